import pytest

from chainq.db.chain_query import ChainQuery
from chainq.db.query import (
    BatchRecords,
    Condition,
    InvalidArgumentError,
    Operator,
    SingleRecord,
    as_records,
)

TABLE = "users"


# ---------- records ----------

def test_as_records_picks_variant_by_type():
    assert as_records({"a": 1}) == SingleRecord({"a": 1})
    assert as_records([{"a": 1}, {"a": 2}]) == BatchRecords([{"a": 1}, {"a": 2}])
    assert as_records(({"a": 1},)) == BatchRecords([{"a": 1}])
    # integer keys do not turn a mapping into a batch
    assert as_records({0: "x", 1: "y"}) == SingleRecord({0: "x", 1: "y"})


@pytest.mark.parametrize("data", [{}, [], (), None, ""])
def test_as_records_rejects_empty(data):
    with pytest.raises(InvalidArgumentError):
        as_records(data)


def test_as_records_rejects_non_mapping_batch_items():
    with pytest.raises(InvalidArgumentError):
        as_records([{"a": 1}, "b"])


# ---------- insert ----------

@pytest.mark.parametrize("data", [{}, []])
def test_insert_empty_fails(recorder, data):
    with pytest.raises(InvalidArgumentError):
        ChainQuery(recorder).insert(TABLE, data)
    assert recorder.calls == []


def test_insert_single_and_batch(recorder):
    q = ChainQuery(recorder)
    assert q.insert(TABLE, {"name": "Ana"}) == 1
    assert recorder.calls[-1] == ("insert", TABLE, {"name": "Ana"})

    assert q.insert(TABLE, [{"name": "Ana"}, {"name": "Boris"}]) == 2
    assert recorder.calls[-1] == ("insert", TABLE, [{"name": "Ana"}, {"name": "Boris"}])


def test_insert_accepts_explicit_variants(recorder):
    q = ChainQuery(recorder)
    q.insert(TABLE, SingleRecord({"name": "Ana"}))
    q.insert(TABLE, BatchRecords([{"name": "Boris"}]))
    assert recorder.calls[0][2] == {"name": "Ana"}
    assert recorder.calls[1][2] == [{"name": "Boris"}]


def test_insert_batch_with_bad_record_fails_before_driver(recorder):
    with pytest.raises(InvalidArgumentError):
        ChainQuery(recorder).insert(TABLE, [{"name": "Ana"}, ["Boris"]])
    assert recorder.calls == []


# ---------- delete ----------

def test_delete_without_where_fails(recorder):
    with pytest.raises(InvalidArgumentError):
        ChainQuery(recorder).delete(TABLE)
    assert recorder.calls == []


def test_delete_forwards_accumulated_where(recorder):
    q = ChainQuery(recorder).where("id", 3).or_where("role", "guest")
    assert q.delete(TABLE) == 1
    op, table, request = recorder.calls[-1]
    assert (op, table) == ("delete", TABLE)
    assert request == {"WHERE": q.state.where}
    # state is not cleared by writes
    assert q.state.has_where()


def test_delete_after_clear_fails_again(recorder):
    q = ChainQuery(recorder).where("id", 3)
    q.clear()
    with pytest.raises(InvalidArgumentError):
        q.delete(TABLE)


# ---------- update ----------

def test_update_empty_data_fails(recorder):
    with pytest.raises(InvalidArgumentError):
        ChainQuery(recorder).where("id", 1).update(TABLE, {})


def test_update_without_where_or_primary_key_fails(recorder):
    with pytest.raises(InvalidArgumentError):
        ChainQuery(recorder).update(TABLE, {"name": "x"})
    with pytest.raises(InvalidArgumentError):
        ChainQuery(recorder).update(TABLE, [{"id": 1, "name": "x"}])
    assert recorder.calls == []


def test_update_single_with_where(recorder):
    q = ChainQuery(recorder).where("age", ">", 30)
    assert q.update(TABLE, {"role": "senior"}) == 1
    op, table, data, request = recorder.calls[-1]
    assert (op, table, data) == ("update", TABLE, {"role": "senior"})
    assert request == {"WHERE": q.state.where}


def test_update_single_by_primary_key_without_where(recorder):
    ChainQuery(recorder).update(TABLE, {"id": 4, "role": "admin"}, "id")
    op, table, data, request = recorder.calls[-1]
    assert data == {"role": "admin"}
    assert request["WHERE"][0].conditions == [("id", Condition(Operator.EQUALS, 4))]


def test_update_single_by_primary_key_requires_key_in_record(recorder):
    with pytest.raises(InvalidArgumentError):
        ChainQuery(recorder).update(TABLE, {"role": "admin"}, "id")


def test_batch_update_accumulates_affected_rows(recorder):
    recorder.affected = 2
    rows = [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}, {"id": 3, "name": "C"}]
    assert ChainQuery(recorder).update(TABLE, rows, "id") == 6

    updates = [c for c in recorder.calls if c[0] == "update"]
    assert [c[2] for c in updates] == [{"name": "A"}, {"name": "B"}, {"name": "C"}]
    assert [c[3]["WHERE"][0].as_dict() for c in updates] == [{"id": 1}, {"id": 2}, {"id": 3}]
    assert recorder.transactions == ["begin", "commit"]
    # caller's records are not modified
    assert rows[0] == {"id": 1, "name": "A"}


def test_batch_update_ignores_where_and_uses_primary_key(recorder):
    q = ChainQuery(recorder).where("role", "user")
    q.update(TABLE, [{"id": 9, "name": "Z"}], "id")
    assert recorder.calls[-1][3]["WHERE"][0].as_dict() == {"id": 9}


def test_batch_update_missing_primary_key_fails_before_any_update(recorder):
    rows = [{"id": 1, "name": "A"}, {"name": "B"}]
    with pytest.raises(InvalidArgumentError):
        ChainQuery(recorder).update(TABLE, rows, "id")
    assert recorder.calls == []
    assert recorder.transactions == []


def test_driver_errors_propagate_unchanged(recorder):
    class Boom(RuntimeError):
        pass

    def explode(*a, **kw):
        raise Boom("db down")

    recorder.select = explode
    with pytest.raises(Boom):
        ChainQuery(recorder).from_("t").get()

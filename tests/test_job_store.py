import pytest
from pydantic import ValidationError
from app.models.job import JobInput, JobRecord, COMPLETED
from app.services.errors import JobNotFoundError
from app.services.job_store import JobStore


def make_record(job_id: str, **changes) -> JobRecord:
    record = JobRecord(
        id=job_id,
        input=JobInput(repo_url=f"https://example.com/org/{job_id}", project_name=job_id),
    )
    return record.evolve(**changes) if changes else record


class TestJobStore:
    """Test the in-memory job registry"""

    def test_put_and_get(self):
        store = JobStore()
        record = make_record("a")
        store.put(record)

        assert store.get("a") is record
        assert "a" in store
        assert len(store) == 1

    def test_put_replaces_by_id(self):
        store = JobStore()
        store.put(make_record("a"))
        store.put(make_record("a", percentage=40))

        assert len(store) == 1
        assert store.get("a").percentage == 40

    def test_get_unknown_raises_not_found(self):
        store = JobStore()

        with pytest.raises(JobNotFoundError) as exc_info:
            store.get("missing")

        assert exc_info.value.job_id == "missing"
        assert isinstance(exc_info.value, KeyError)

    def test_list_returns_summaries_without_result(self):
        store = JobStore()
        store.put(make_record("a", status=COMPLETED, result={"readme": "big payload"}))
        store.put(make_record("b"))

        summaries = {s.id: s for s in store.list()}

        assert set(summaries) == {"a", "b"}
        assert summaries["a"].status == COMPLETED
        assert summaries["a"].project_name == "a"
        assert not hasattr(summaries["a"], "result")

    def test_list_is_lazy(self):
        store = JobStore()
        store.put(make_record("a"))

        listing = store.list()

        assert not isinstance(listing, list)
        assert [s.id for s in listing] == ["a"]

    def test_stores_are_isolated(self):
        first, second = JobStore(), JobStore()
        first.put(make_record("a"))

        assert "a" not in second
        assert list(second.list()) == []


class TestJobRecord:
    """Test job record immutability"""

    def test_records_are_frozen(self):
        record = make_record("a")

        with pytest.raises(ValidationError):
            record.percentage = 50

    def test_evolve_returns_new_record(self):
        record = make_record("a")
        updated = record.evolve(percentage=35, stage="acquire")

        assert record.percentage == 0
        assert updated.percentage == 35
        assert updated.id == record.id

    def test_serializes_camel_case(self):
        data = make_record("a").model_dump(by_alias=True)

        assert "stageIndex" in data
        assert "createdAt" in data
        assert data["input"]["repoUrl"] == "https://example.com/org/a"

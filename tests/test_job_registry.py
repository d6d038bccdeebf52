import pytest

from model.job import JobStatus
from repository.job_registry import JobRegistry


class Clock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def tick(self, seconds: float = 1.0) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> Clock:
    return Clock()


def test_create_starts_queued_at_zero(clock):
    registry = JobRegistry(clock=clock)
    job = registry.create("job-1", message="Your request is in the queue.")

    assert job.status is JobStatus.queued
    assert job.progress == 0
    assert registry.get("job-1").message == "Your request is in the queue."


def test_create_rejects_duplicate_ids(clock):
    registry = JobRegistry(clock=clock)
    registry.create("job-1")
    with pytest.raises(ValueError):
        registry.create("job-1")


def test_unknown_id_reads_back_as_unknown(clock):
    registry = JobRegistry(clock=clock)
    job = registry.get("nope")
    assert job.status is JobStatus.unknown
    assert job.id == "nope"


def test_update_of_unknown_job_is_a_no_op(clock):
    registry = JobRegistry(clock=clock)
    assert registry.update("ghost", JobStatus.processing, 50) is False
    assert len(registry) == 0


def test_progress_is_clamped_and_never_lowered(clock):
    registry = JobRegistry(clock=clock)
    registry.create("job-1")
    registry.update("job-1", JobStatus.processing, 40, "halfway")
    registry.update("job-1", JobStatus.processing, 20, "late report")
    assert registry.get("job-1").progress == 40
    assert registry.get("job-1").message == "late report"

    registry.update("job-1", JobStatus.processing, 250)
    assert registry.get("job-1").progress == 100


def test_terminal_states_are_final(clock):
    registry = JobRegistry(clock=clock)
    registry.create("job-1")
    registry.update("job-1", JobStatus.processing, 5)
    assert registry.update("job-1", JobStatus.completed, 100, "done", {"contentId": "c1"})

    assert registry.update("job-1", JobStatus.processing, 50) is False
    assert registry.update("job-1", JobStatus.failed, 0, "Error: x") is False
    job = registry.get("job-1")
    assert job.status is JobStatus.completed
    assert job.data == {"contentId": "c1"}


def test_queued_cannot_jump_to_terminal(clock):
    registry = JobRegistry(clock=clock)
    registry.create("job-1")
    assert registry.update("job-1", JobStatus.completed, 100) is False
    assert registry.get("job-1").status is JobStatus.queued


def test_terminal_jobs_expire_after_ttl(clock):
    registry = JobRegistry(terminal_ttl_seconds=300, clock=clock)
    registry.create("done")
    registry.create("running")
    registry.update("done", JobStatus.processing, 5)
    registry.update("done", JobStatus.failed, 5, "Error: boom")
    registry.update("running", JobStatus.processing, 50)

    clock.tick(299)
    assert registry.get("done").status is JobStatus.failed

    clock.tick(2)
    assert registry.get("done").status is JobStatus.unknown
    assert registry.get("running").status is JobStatus.processing


def test_sweep_evicts_oldest_fifth_when_over_capacity(clock):
    registry = JobRegistry(capacity=10, eviction_fraction=0.2, clock=clock)
    for i in range(10):
        registry.create(f"job-{i}")
        clock.tick()
    assert len(registry) == 10

    # job-0 is refreshed so it is no longer the oldest
    registry.update("job-0", JobStatus.processing, 5)
    clock.tick()
    registry.create("job-10")

    assert len(registry) == 9
    assert registry.get("job-0").status is JobStatus.processing
    assert registry.get("job-1").status is JobStatus.unknown
    assert registry.get("job-2").status is JobStatus.unknown
    assert registry.get("job-10").status is JobStatus.queued


def test_size_never_exceeds_capacity(clock):
    registry = JobRegistry(capacity=50, clock=clock)
    for i in range(500):
        registry.create(f"job-{i}")
        clock.tick(0.5)
        assert len(registry) <= 50


def test_manual_sweep_reports_expired_count(clock):
    registry = JobRegistry(terminal_ttl_seconds=10, clock=clock)
    for i in range(3):
        registry.create(f"job-{i}")
        registry.update(f"job-{i}", JobStatus.processing, 5)
        registry.update(f"job-{i}", JobStatus.completed, 100)
    clock.tick(11)
    assert registry.sweep() == 3
    assert len(registry) == 0

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from temporaries.services import MemoryOptionBackend, TemporaryStore, TemporarySweeper
from temporaries.services.scheduler import (
    SWEEP_JOB_ID,
    get_job_info,
    get_scheduler,
    register_sweep_job,
    remove_sweep_job,
    shutdown_scheduler,
)


@pytest.fixture
def sweeper():
    return TemporarySweeper([TemporaryStore(MemoryOptionBackend())])


@pytest.fixture
def scheduler():
    return AsyncIOScheduler(timezone="UTC")


def test_register_and_remove_sweep_job(sweeper, scheduler):
    job_id = register_sweep_job(sweeper, 600, scheduler=scheduler)
    assert job_id == SWEEP_JOB_ID

    job = scheduler.get_job(job_id)
    assert job.func == sweeper.sweep
    assert job.max_instances == 1
    assert job.coalesce is True

    info = get_job_info(job_id, scheduler=scheduler)
    assert info["id"] == SWEEP_JOB_ID
    assert "0:10:00" in info["trigger"]

    assert remove_sweep_job(job_id, scheduler=scheduler) is True
    assert remove_sweep_job(job_id, scheduler=scheduler) is False
    assert get_job_info(job_id, scheduler=scheduler) is None


def test_singleton_scheduler_is_reset_on_shutdown():
    first = get_scheduler()
    assert get_scheduler() is first

    shutdown_scheduler()
    assert get_scheduler() is not first
    shutdown_scheduler()

"""
Scheduler Factory
Centralizes the logic for selecting the store and wiring up a Scheduler.
"""

import logging

from echodeck.application.config import AppConfig
from echodeck.application.scheduler import Scheduler
from echodeck.domain.ports import Clock, SchedulerStore
from echodeck.infrastructure.storage import InMemoryStore, JsonFileStore

logger = logging.getLogger(__name__)


def get_store(config: AppConfig) -> SchedulerStore:
    """
    Returns the SchedulerStore implementation selected by config.
    """
    if config.backend == "memory":
        logger.info("Store: in-memory (nothing will be saved)")
        return InMemoryStore()

    logger.info(f"Store: JSON files in {config.data_dir}")
    return JsonFileStore(config.data_dir)


def build_scheduler(config: AppConfig, clock: Clock | None = None) -> Scheduler:
    return Scheduler(get_store(config), clock=clock)

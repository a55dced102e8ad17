"""
Study Service Factory
Centralizes the logic for selecting store and cache adapters.
"""

from quizflow.application.config import AppConfig
from quizflow.application.service import StudyService
from quizflow.application.session_sync import SessionSyncManager, SyncPolicy
from quizflow.domain.interfaces import DurableStore
from quizflow.domain.session.ports import LocalCache
from quizflow.infrastructure.adapters.local_cache import JsonFileCache, MemoryLocalCache
from quizflow.infrastructure.adapters.memory_store import InMemoryDurableStore
from quizflow.infrastructure.adapters.rest_store import RestDurableStore


def get_durable_store(config: AppConfig) -> DurableStore:
    """
    Returns the DurableStore implementation selected by config.
    """
    if config.backend == "rest":
        if not config.rest_url:
            raise ValueError("backend 'rest' requires rest_url")
        return RestDurableStore(
            base_url=config.rest_url,
            api_key=config.rest_api_key,
            timeout=config.request_timeout,
        )
    return InMemoryDurableStore()


def get_local_cache(config: AppConfig) -> LocalCache:
    if config.cache_backend == "memory":
        return MemoryLocalCache()
    return JsonFileCache(config.cache_path)


def build_study_service(
    config: AppConfig,
    store: DurableStore | None = None,
    cache: LocalCache | None = None,
) -> StudyService:
    """
    Wire a StudyService from config. Explicit store/cache instances win over
    the configured backends.
    """
    store = store or get_durable_store(config)
    sync = SessionSyncManager(
        local_cache=cache or get_local_cache(config),
        durable=store,
        learner=config.learner_id,
        policy=SyncPolicy(debounce_seconds=config.debounce_seconds),
    )
    return StudyService(store=store, sync=sync)

"""Celery app configuration for asynchronous indexing tasks."""

from __future__ import annotations

from celery import Celery

from elementsearch.config import get_settings

settings = get_settings()
celery_app = Celery("elementsearch", broker=settings.redis_url, backend=settings.redis_url)
celery_app.conf.update(
    task_default_queue="indexing",
    task_routes={
        "elementsearch.tasks.index.update_element": {"queue": "indexing"},
        "elementsearch.tasks.index.delete_element": {"queue": "indexing"},
        "elementsearch.tasks.index.rebuild_endpoint": {"queue": "rebuild"},
    },
    include=["elementsearch.tasks.index_tasks"],
)

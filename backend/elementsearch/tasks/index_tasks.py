"""Celery tasks for live element indexing and endpoint rebuilds."""

from __future__ import annotations

from typing import Any

import structlog
from celery import shared_task

from elementsearch.config import get_settings
from elementsearch.database import SessionLocal
from elementsearch.exceptions import RebuildFailed
from elementsearch.services.element_sync import element_sync_service
from elementsearch.services.rebuild_engine import rebuild_engine

logger = structlog.get_logger(__name__)

UPDATE_TASK = "elementsearch.tasks.index.update_element"
DELETE_TASK = "elementsearch.tasks.index.delete_element"
REBUILD_TASK = "elementsearch.tasks.index.rebuild_endpoint"


@shared_task(name=UPDATE_TASK, ignore_result=True, queue="indexing")
def update_element_task(element_type: str, element_id: int, endpoint_name: str | None = None) -> None:
    """Upsert one element into every endpoint indexing it."""
    with SessionLocal() as db:
        element_sync_service.update_element(db, element_type, element_id, endpoint_name=endpoint_name)


@shared_task(name=DELETE_TASK, ignore_result=True, queue="indexing")
def delete_element_task(
    element_type: str,
    element_id: int,
    class_name: str | None = None,
    is_folder: bool = False,
    endpoint_name: str | None = None,
) -> None:
    """Remove one element document from every endpoint indexing it."""
    with SessionLocal() as db:
        element_sync_service.delete_element(
            db,
            element_type,
            element_id,
            class_name=class_name,
            is_folder=is_folder,
            endpoint_name=endpoint_name,
        )


@shared_task(name=REBUILD_TASK, queue="rebuild")
def rebuild_endpoint_task(endpoint_name: str) -> dict[str, Any]:
    """Rebuild every index of one endpoint and return the run report."""
    with SessionLocal() as db:
        try:
            return rebuild_engine.run(db, endpoint_name)
        except RebuildFailed as exc:
            logger.error("rebuild_task_failed", endpoint=endpoint_name, stage=exc.stage, error=str(exc))
            raise


def _send(task_name: str, args: list[Any], kwargs: dict[str, Any], queue: str) -> bool:
    """Try to queue a task on Celery; return False on dispatch failure."""
    try:
        from elementsearch.celery_app import celery_app

        celery_app.send_task(task_name, args=args, kwargs=kwargs, queue=queue)
        logger.debug("index_task_enqueued", task=task_name, args=args)
        return True
    except Exception as exc:  # noqa: BLE001
        logger.warning("index_task_dispatch_failed", task=task_name, error=str(exc))
        return False


def dispatch_element_update(element_type: str, element_id: int, endpoint_name: str | None = None) -> None:
    """Queue an element update on Celery when enabled, otherwise run it inline."""
    if get_settings().index_tasks_use_celery and _send(
        UPDATE_TASK, [element_type, element_id], {"endpoint_name": endpoint_name}, "indexing"
    ):
        return
    update_element_task(element_type, element_id, endpoint_name)


def dispatch_element_delete(
    element_type: str,
    element_id: int,
    *,
    class_name: str | None = None,
    is_folder: bool = False,
    endpoint_name: str | None = None,
) -> None:
    """Queue an element delete on Celery when enabled, otherwise run it inline."""
    kwargs = {"class_name": class_name, "is_folder": is_folder, "endpoint_name": endpoint_name}
    if get_settings().index_tasks_use_celery and _send(DELETE_TASK, [element_type, element_id], kwargs, "indexing"):
        return
    delete_element_task(element_type, element_id, **kwargs)

"""
Cached read models for the claim lists and dashboards.

Views read through ``cache.get``/``cache.set`` with the keys below; every
claim mutation calls :func:`invalidate_claim_views` so the lecturer's list,
the owning center's list and the dashboards are rebuilt on the next read.
"""
from __future__ import annotations

import logging

from flask_caching import Cache

logger = logging.getLogger(__name__)

cache = Cache()


def lecturer_claims_key(lecturer_id: str, center_id: str) -> str:
    return f"claims_lecturer_{lecturer_id}_{center_id}"


def center_claims_key(center_id: str) -> str:
    return f"claims_center_{center_id}"


def registry_dashboard_key() -> str:
    return "dashboard_registry"


def center_dashboard_key(center_id: str) -> str:
    return f"dashboard_center_{center_id}"


def lecturer_dashboard_key(lecturer_id: str) -> str:
    return f"dashboard_lecturer_{lecturer_id}"


def invalidate_claim_views(*, center_id: str, lecturer_id: str | None = None) -> None:
    keys = [center_claims_key(center_id), center_dashboard_key(center_id), registry_dashboard_key()]
    if lecturer_id:
        keys.extend([lecturer_claims_key(lecturer_id, center_id), lecturer_dashboard_key(lecturer_id)])
    cache.delete_many(*keys)
    logger.debug("Invalidated cached views: %s", ", ".join(keys))


def invalidate_center_views(center_id: str | None = None) -> None:
    keys = [registry_dashboard_key()]
    if center_id:
        keys.append(center_dashboard_key(center_id))
    cache.delete_many(*keys)

"""Cluster optimization endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...errors import ClusterAuthorizationError, ClusterDataError, ClusterNotFoundError, StoreError
from ...persistence.database import SupabaseStore
from ...schemas.clusters import OptimizationResponse
from ...services.clusters import optimize_cluster
from ..deps import get_caller_id, get_store

router = APIRouter(prefix="/clusters", tags=["clusters"])


@router.post("/{cluster_id}/optimize", response_model=OptimizationResponse, status_code=status.HTTP_200_OK)
def optimize(
    cluster_id: str,
    caller_id: str = Depends(get_caller_id),
    store: SupabaseStore = Depends(get_store),
) -> OptimizationResponse:
    try:
        result = optimize_cluster(cluster_id, caller_id, store=store)
    except ClusterAuthorizationError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except ClusterNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ClusterDataError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StoreError as exc:
        logging.exception(f"Error optimizing cluster {cluster_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to optimize cluster: {exc}",
        ) from exc
    return OptimizationResponse.from_domain(result)

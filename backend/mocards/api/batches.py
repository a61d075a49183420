"""Card batch API endpoints (administrators)."""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from mocards.api.deps import Actor, get_db, require_admin
from mocards.schemas.card import (
    BatchCreate,
    BatchGenerateResponse,
    BatchResponse,
    BatchStatsResponse,
    GeneratedCardResponse,
)
from mocards.services import card_lifecycle

router = APIRouter(prefix="/batches", tags=["batches"])


@router.post("", response_model=BatchGenerateResponse, status_code=status.HTTP_201_CREATED)
def generate_batch(
    batch_data: BatchCreate,
    db: Session = Depends(get_db),
    admin: Actor = Depends(require_admin),
):
    """Generate a batch of unactivated cards with incomplete passcodes."""
    batch, cards = card_lifecycle.generate_batch(
        db,
        admin.actor_id,
        batch_data.total_cards,
        distribution_label=batch_data.distribution_label,
        idempotency_key=batch_data.idempotency_key,
    )
    return BatchGenerateResponse(
        batch=BatchResponse.model_validate(batch),
        cards=[GeneratedCardResponse.model_validate(c) for c in cards],
    )


@router.get("", response_model=list[BatchResponse])
def list_batches(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    admin: Actor = Depends(require_admin),
):
    """List batches, newest first."""
    return card_lifecycle.list_batches(db, limit=limit, offset=offset)


@router.get("/{batch_id}", response_model=BatchGenerateResponse)
def get_batch(
    batch_id: str,
    db: Session = Depends(get_db),
    admin: Actor = Depends(require_admin),
):
    """Get a batch with its cards (for reprinting)."""
    batch = card_lifecycle.get_batch(db, batch_id)
    return BatchGenerateResponse(
        batch=BatchResponse.model_validate(batch),
        cards=[GeneratedCardResponse.model_validate(c) for c in batch.cards],
    )


@router.get("/{batch_id}/stats", response_model=BatchStatsResponse)
def get_batch_stats(
    batch_id: str,
    db: Session = Depends(get_db),
    admin: Actor = Depends(require_admin),
):
    """Card counts per status for a batch."""
    return BatchStatsResponse(**card_lifecycle.get_batch_statistics(db, batch_id))

"""
Shared result models returned by engine operations.
"""
from typing import Optional

from pydantic import BaseModel

from boutique.errors import ReasonCode


class OperationResult(BaseModel):
    """Outcome of a cart or wishlist mutation.

    Rejections are expected and user-facing, so they come back here
    instead of being raised.
    """
    success: bool
    reason: Optional[ReasonCode] = None
    message: Optional[str] = None
    item_id: Optional[str] = None
    # "added" / "merged" / "removed", set by mutations that can go either way
    action: Optional[str] = None

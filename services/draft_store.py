import logging
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from models.schemas import Draft
from services.errors import ChannelMismatch, DraftNotFound

logger = logging.getLogger(__name__)

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

class DraftStore:
    """
    Pending rewritten drafts, one per user, kept for the lifetime of the process.

    A new draft for a user replaces the previous one (last write wins). Drafts
    older than ``ttl_seconds`` are treated as gone, and the store never holds
    more than ``max_entries`` drafts; the oldest is dropped first.
    """

    def __init__(self, ttl_seconds: int = 900, max_entries: int = 1000, clock: Optional[Callable[[], datetime]] = None):
        self.ttl = timedelta(seconds=ttl_seconds) if ttl_seconds > 0 else None
        self.max_entries = max_entries
        self.clock = clock or utc_now
        self._drafts: "OrderedDict[int, Draft]" = OrderedDict()

    def __len__(self):
        return len(self._drafts)

    def __contains__(self, owner_id):
        return self.get(owner_id) is not None

    def _is_expired(self, draft: Draft) -> bool:
        return self.ttl is not None and self.clock() - draft.created_at >= self.ttl

    def _evict_expired(self):
        expired = [owner_id for owner_id, draft in self._drafts.items() if self._is_expired(draft)]
        for owner_id in expired:
            del self._drafts[owner_id]
        if expired:
            logger.info("Evicted %d expired drafts", len(expired))

    def put(self, owner_id: int, rewritten_text: str, origin_channel_id: int) -> Draft:
        self._evict_expired()
        if owner_id in self._drafts:
            logger.info("Replacing pending draft of user %s", owner_id)
            del self._drafts[owner_id]
        draft = Draft(
            owner_id=owner_id,
            rewritten_text=rewritten_text,
            origin_channel_id=origin_channel_id,
            created_at=self.clock(),
        )
        self._drafts[owner_id] = draft
        while len(self._drafts) > self.max_entries:
            dropped, _ = self._drafts.popitem(last=False)
            logger.warning("Draft store full, dropped draft of user %s", dropped)
        return draft

    def get(self, owner_id: int) -> Optional[Draft]:
        draft = self._drafts.get(owner_id)
        if draft is not None and self._is_expired(draft):
            del self._drafts[owner_id]
            return None
        return draft

    def take_for_send(self, owner_id: int, channel_id: int) -> Draft:
        """Remove and return the user's draft if it belongs to ``channel_id``."""
        draft = self.get(owner_id)
        if draft is None:
            raise DraftNotFound("No active draft found. Run /compose again.")
        if draft.origin_channel_id != channel_id:
            raise ChannelMismatch(draft.origin_channel_id, channel_id)
        del self._drafts[owner_id]
        return draft

    def restore(self, draft: Draft) -> bool:
        """Put back a draft taken for sending unless its owner already has a newer one."""
        if self.get(draft.owner_id) is not None or self._is_expired(draft):
            return False
        self._drafts[draft.owner_id] = draft
        while len(self._drafts) > self.max_entries:
            self._drafts.popitem(last=False)
        return True

    def cancel(self, owner_id: int) -> bool:
        return self._drafts.pop(owner_id, None) is not None

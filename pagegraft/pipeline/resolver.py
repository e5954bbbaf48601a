"""
Post-batch reference resolution.
"""

import logging

from ..database import GraphStore
from ..errors import ReferenceResolutionError
from ..models import ResolutionOutcome
from ..notifications import Notifier


class ReferenceResolver:
    """
    Re-derives the stored identifier of every cross-reference target.

    Runs once after the whole batch, over the entire graph: existing content
    may reference imported blocks and the other way round.
    """

    def __init__(self, store: GraphStore, notifier: Notifier):
        self.store = store
        self.notifier = notifier

    def resolve(self) -> ResolutionOutcome:
        try:
            referenced = self.store.get_all_referenced_block_ids()
            updated = self.store.set_blocks_id(referenced)
        except Exception as e:
            error = ReferenceResolutionError(f"Failed to resolve block references: {e}")
            logging.error(str(error), exc_info=True)
            self.notifier.show(f"Error happens when resolving block references:\n{e}", "error")
            return ResolutionOutcome(error=error)

        logging.info(f"Resolved {len(referenced)} referenced blocks ({updated} updated)")
        return ResolutionOutcome(referenced=len(referenced), updated=updated)

"""
Identifier pre-registration.

Every identifier of a batch is written as a stub before any page or block is
created, so content may reference nodes that are materialized later.
"""

import logging
from typing import List

from ..database import GraphStore
from ..errors import PreRegistrationError, StoreError
from ..models import ImportBatch


def collect_identifiers(batch: ImportBatch) -> List[str]:
    """
    Collect the identifiers of all nodes at all depths of a batch.

    Raises:
        PreRegistrationError: If an identifier occurs more than once
    """
    identifiers: List[str] = []
    seen = set()
    for node in batch.iter_nodes():
        if node.identifier in seen:
            raise PreRegistrationError(f"Duplicate identifier in import batch: {node.identifier}")
        seen.add(node.identifier)
        identifiers.append(node.identifier)
    return identifiers


def preregister(store: GraphStore, batch: ImportBatch) -> int:
    """
    Write stub records for every node of the batch in one bulk write.

    Returns:
        Number of stubs created (identifiers already in the store are kept)

    Raises:
        PreRegistrationError: On duplicate identifiers or a failed store write
    """
    identifiers = collect_identifiers(batch)
    try:
        created = store.transact_stubs(identifiers)
    except StoreError as e:
        raise PreRegistrationError(str(e)) from e
    logging.info(f"Pre-registered {len(identifiers)} identifiers ({created} new)")
    return created

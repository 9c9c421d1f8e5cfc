"""
Reverse path: apply cell edits reported by the mirror back to the store.

A batch runs in one transaction. Individual edits that fail or are not
whitelisted are skipped without aborting the rest of the batch.
"""

import json
from typing import Any, Dict, List, Optional, Union

from loguru import logger
from pydantic import BaseModel, StrictStr, TypeAdapter, ValidationError

from sheetsync.core.database import begin_transaction, upsert_product_field

from .attribution import SYSTEM, is_self_inflicted, resolve_actor
from .exceptions import PayloadDecodeError, TransactionError
from .models import FieldEdit, SheetField


class EditPayload(BaseModel):
    """Wire shape of one edit; unknown keys are ignored."""

    uuid: Optional[StrictStr] = None
    field: Optional[StrictStr] = None
    value: Any = None
    user_email: Optional[StrictStr] = None

    def to_edit(self) -> FieldEdit:
        return FieldEdit(
            uuid=self.uuid or "",
            field=self.field or "",
            value=self.value,
            user_email=self.user_email or "",
        )


# null, a single object, or an array of objects
_BODY_ADAPTER = TypeAdapter(Optional[Union[List[EditPayload], EditPayload]])


def decode_edits(body: Union[bytes, str]) -> List[FieldEdit]:
    """Decode a request body holding one edit object or an array of them.

    A JSON null body decodes to an empty batch.

    Raises:
        PayloadDecodeError: If the body is neither shape
    """
    try:
        payload = json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise PayloadDecodeError(f"Invalid JSON format: {e}") from e

    try:
        decoded = _BODY_ADAPTER.validate_python(payload)
    except ValidationError as e:
        raise PayloadDecodeError(
            f"Invalid edit payload: {e.errors()[0]['msg']}"
        ) from e

    if decoded is None:
        return []
    if isinstance(decoded, list):
        return [item.to_edit() for item in decoded]
    return [decoded.to_edit()]


def resolve_edit(edit: FieldEdit) -> Optional[Dict[str, Any]]:
    """Map an edit to {'column', 'value', 'actor'}, or None to skip it.

    Raises:
        ValueError: If the value cannot be coerced for its column
    """
    if not edit.uuid or not edit.field:
        return None

    field = SheetField.from_label(edit.field)
    if field is None:
        logger.debug(f"Ignoring edit to non-whitelisted field '{edit.field}'")
        return None

    # A human edit never carries the sentinel, or its echo would be dropped
    actor = resolve_actor(edit.user_email)
    if is_self_inflicted(actor):
        actor = SYSTEM

    return {
        "column": field.column,
        "value": field.parse(edit.value),
        "actor": actor,
    }


def apply_edit_batch(conn: Any, edits: List[FieldEdit]) -> int:
    """Apply a batch of edits in a single transaction.

    Args:
        conn: Store connection
        edits: Decoded edits, in order

    Returns:
        Number of edits applied successfully

    Raises:
        TransactionError: If the transaction cannot be opened or committed
    """
    if not edits:
        return 0

    logger.info(f"Received update with {len(edits)} changes")

    try:
        begin_transaction(conn)
    except Exception as e:
        logger.error(f"Could not open transaction: {e}")
        raise TransactionError(f"DB error: {e}") from e

    applied = 0
    for edit in edits:
        try:
            resolved = resolve_edit(edit)
            if resolved is None:
                continue
            upsert_product_field(
                conn,
                edit.uuid,
                resolved["column"],
                resolved["value"],
                resolved["actor"],
            )
            applied += 1
        except Exception as e:
            logger.warning(f"Batch item failed ({edit.uuid}): {e}")

    try:
        conn.commit()
    except Exception as e:
        logger.error(f"Transaction commit failed: {e}")
        conn.rollback()
        raise TransactionError(f"Transaction failed: {e}") from e

    logger.info(f"Processed {applied} updates")
    return applied

"""
Record store for frequency arrays, index arrays and presets.

The store receives its database client explicitly. ``params_json`` columns
are serialized on the way in and decoded on every way out, so callers only
ever see the structured payload.
"""
import json
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError

from multiplier_api.exceptions import DatabaseError, ValidationError
from multiplier_api.logger import get_logger
from multiplier_api.models import RecordKind, SLOT_KEY

logger = get_logger("crud")

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


def validate_record_data(kind: RecordKind, row: Dict[str, Any], allow_empty: bool = True) -> None:
    """Raise ValidationError naming the first required field that is missing."""
    for field in kind.required_fields:
        value = row.get(field)
        if value is None or (not allow_empty and value == ""):
            raise ValidationError(f"Missing field: {field}")


def encode_row(kind: RecordKind, row: Dict[str, Any]) -> Dict[str, Any]:
    encoded = dict(row)
    for column in kind.json_columns:
        if column in encoded:
            encoded[column] = json.dumps(encoded[column])
    return encoded


def decode_row(kind: RecordKind, row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    decoded = dict(row)
    for column in kind.json_columns:
        value = decoded.get(column)
        if isinstance(value, str):
            try:
                decoded[column] = json.loads(value)
            except ValueError:
                logger.warning(
                    f"Undecodable {column} in {kind.table} row {decoded.get(kind.id_column)}"
                )
                decoded[column] = None
    return decoded


class RecordStore:
    """Keyed reads and writes over the three record tables."""

    def __init__(self, client, table_prefix: str = ""):
        self.client = client
        self.table_prefix = table_prefix

    def _table(self, kind: RecordKind):
        return self.client.table(f"{self.table_prefix}{kind.table}")

    # Reads

    def list_all(self, kind: RecordKind) -> List[Dict[str, Any]]:
        """Every row of a table, unscoped."""
        try:
            response = self._table(kind).select("*").order(kind.id_column).execute()
        except APIError as e:
            logger.error(f"Failed to list {kind.table}: {e.message}")
            raise DatabaseError(f"Could not read {kind.label}s", e.message)
        return [decode_row(kind, row) for row in response.data or []]

    def list_for_user(self, kind: RecordKind, user_id: int) -> List[Dict[str, Any]]:
        """All rows owned by ``user_id``, payloads decoded."""
        try:
            response = (
                self._table(kind)
                .select("*")
                .eq("user_id", user_id)
                .order(kind.id_column)
                .execute()
            )
        except APIError as e:
            logger.error(f"Failed to list {kind.table} for user {user_id}: {e.message}")
            raise DatabaseError(f"Could not read {kind.label}s", e.message)
        return [decode_row(kind, row) for row in response.data or []]

    def find_slot(self, kind: RecordKind, user_id: int, preset_number: int) -> Optional[Dict[str, Any]]:
        """The row stored in a user's slot, or None when the slot is empty."""
        try:
            response = (
                self._table(kind)
                .select("*")
                .eq("user_id", user_id)
                .eq("preset_number", preset_number)
                .order(kind.id_column)
                .limit(1)
                .execute()
            )
        except APIError as e:
            logger.error(f"Slot lookup failed in {kind.table}: {e.message}")
            raise DatabaseError(f"Could not read {kind.label}", e.message)
        if not response.data:
            return None
        return response.data[0]

    # Writes

    def _insert(self, kind: RecordKind, encoded: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = self._table(kind).insert(encoded).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise
            logger.error(f"Insert into {kind.table} failed: {e.message}")
            raise DatabaseError(f"Could not insert {kind.label}", e.message)
        if not result.data:
            raise DatabaseError(f"Could not insert {kind.label}", "No data returned from insert")
        return result.data[0]

    def _update_slot(self, kind: RecordKind, encoded: Dict[str, Any]) -> None:
        changes = {k: v for k, v in encoded.items() if k not in SLOT_KEY}
        try:
            (
                self._table(kind)
                .update(changes)
                .eq("user_id", encoded["user_id"])
                .eq("preset_number", encoded["preset_number"])
                .execute()
            )
        except APIError as e:
            logger.error(f"Update of {kind.table} failed: {e.message}")
            raise DatabaseError(f"Could not update {kind.label}", e.message)

    def upsert_by_slot(self, kind: RecordKind, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Save ``row`` into its owner's slot.

        The slot is looked up once; an empty slot gets a new row, an occupied
        one has its non-key fields overwritten in place. A concurrent writer
        that fills the slot first makes the insert hit the unique constraint,
        in which case the write is applied as an update of that row.

        Returns the previous slot contents, the success flag, the id of the
        row written and the owner's full collection.
        """
        if not kind.slotted:
            raise ValueError(f"{kind.table} has no preset slots")
        validate_record_data(kind, row)

        user_id = row["user_id"]
        preset_number = row["preset_number"]
        encoded = encode_row(kind, row)
        existing = self.find_slot(kind, user_id, preset_number)

        if existing is None:
            try:
                record = self._insert(kind, encoded)
                record_id = record[kind.id_column]
                logger.info(
                    f"Created {kind.label} {record_id} in slot {preset_number} for user {user_id}"
                )
            except APIError as e:
                logger.warning(
                    f"Slot {preset_number} of user {user_id} was filled concurrently: {e.message}"
                )
                existing = self.find_slot(kind, user_id, preset_number)
                if existing is None:
                    raise DatabaseError(f"Could not insert {kind.label}", e.message)

        if existing is not None:
            self._update_slot(kind, encoded)
            record_id = existing[kind.id_column]
            logger.info(
                f"Updated {kind.label} {record_id} in slot {preset_number} for user {user_id}"
            )

        return {
            "row": decode_row(kind, existing),
            "success": True,
            kind.id_column: record_id,
            "updated_data": self.list_for_user(kind, user_id),
        }

    def insert(self, kind: RecordKind, row: Dict[str, Any]) -> Dict[str, Any]:
        """Always add a new row; used for index arrays."""
        validate_record_data(kind, row, allow_empty=False)
        try:
            record = self._insert(kind, encode_row(kind, row))
        except APIError as e:
            raise DatabaseError(f"Could not insert {kind.label}", e.message)
        record_id = record[kind.id_column]
        logger.info(f"Created {kind.label} {record_id} for user {row['user_id']}")
        return {
            "success": True,
            kind.id_column: record_id,
            "updated_data": self.list_for_user(kind, row["user_id"]),
        }

    def delete(
        self,
        kind: RecordKind,
        record_id: int,
        user_id: int,
        owner_only: bool = False
    ) -> Dict[str, Any]:
        """
        Delete a row by its identifier and return ``user_id``'s remaining rows.

        Without ``owner_only`` any row may be deleted. A missing row is not
        an error.
        """
        query = self._table(kind).delete().eq(kind.id_column, record_id)
        if owner_only:
            query = query.eq("user_id", user_id)
        try:
            response = query.execute()
        except APIError as e:
            logger.error(f"Failed to delete {kind.table} row {record_id}: {e.message}")
            raise DatabaseError(f"Could not delete {kind.label}", e.message)

        if response.data:
            logger.info(f"Deleted {kind.label} {record_id} (requested by user {user_id})")
        else:
            logger.warning(f"No {kind.label} with ID {record_id} to delete")

        return {"success": True, "updated_data": self.list_for_user(kind, user_id)}

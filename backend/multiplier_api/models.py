"""
Database models for the Multiplier API.
These describe the three record tables and the caller identity.
"""
from typing import Tuple


class RecordKind:
    """Description of one record table and how rows in it are keyed."""

    def __init__(
        self,
        label: str,
        table: str,
        id_column: str,
        required_fields: Tuple[str, ...],
        slotted: bool = False,
        json_columns: Tuple[str, ...] = (),
    ):
        self.label = label
        self.table = table
        self.id_column = id_column
        self.required_fields = required_fields
        # Slotted kinds keep at most one row per (user_id, preset_number)
        self.slotted = slotted
        self.json_columns = json_columns

    def __repr__(self):
        return f"RecordKind({self.table!r})"


FREQ_ARRAY = RecordKind(
    label="frequency array",
    table="multiplier_freq_array",
    id_column="array_id",
    required_fields=("name", "preset_number", "base_freq", "multiplier", "params_json", "user_id"),
    slotted=True,
    json_columns=("params_json",),
)

INDEX_ARRAY = RecordKind(
    label="index array",
    table="multiplier_index_array",
    id_column="array_id",
    required_fields=("index_array", "name", "preset_number", "user_id"),
)

PRESET = RecordKind(
    label="preset",
    table="multiplier_preset",
    id_column="preset_id",
    required_fields=("name", "preset_number", "params_json", "user_id"),
    slotted=True,
    json_columns=("params_json",),
)

SLOT_KEY = ("user_id", "preset_number")


class Identity:
    """The caller as resolved by the identity provider."""

    def __init__(self, user_id: int = 0, is_admin: bool = False):
        self.user_id = user_id
        self.is_admin = is_admin

    @property
    def logged_in(self) -> bool:
        return self.user_id > 0

    def __repr__(self):
        return f"Identity(user_id={self.user_id}, is_admin={self.is_admin})"


ANONYMOUS = Identity()

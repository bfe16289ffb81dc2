"""Clinical reference data stores.

Every lookup returns a ``ReferenceLookup``. A store that has no data for a
lookup (missing database, missing table) answers ``not_configured`` rather
than an empty ``found`` result, so callers can tell "nothing known" apart
from "nothing to look in".
"""

import json
import logging
import os
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable

from . import reference_data
from .models import Interaction, InteractionSeverity

logger = logging.getLogger(__name__)

REFERENCE_TABLES = (
    "drug_interactions",
    "drug_classes",
    "cross_reactivity_rules",
    "allergen_profiles",
    "contraindications",
    "dose_ranges",
    "clinical_guidelines",
)


@dataclass(frozen=True)
class ReferenceLookup:
    """Result of a reference query: either found rows or not configured."""
    configured: bool
    rows: tuple = ()
    source: str = ""

    @classmethod
    def found(cls, rows: Iterable, source: str = "") -> "ReferenceLookup":
        return cls(configured=True, rows=tuple(rows), source=source)

    @classmethod
    def not_configured(cls, source: str = "") -> "ReferenceLookup":
        return cls(configured=False, rows=(), source=source)

    @property
    def first(self):
        return self.rows[0] if self.rows else None


def infer_drug_class(name: str) -> str | None:
    """Infer a drug class from naming conventions (e.g. -cillin, -pril)."""
    needle = name.strip().lower()
    for fragment, drug_class, position in reference_data.CLASS_NAME_PATTERNS:
        if position == "suffix" and needle.endswith(fragment):
            return drug_class
        if position == "prefix" and needle.startswith(fragment):
            return drug_class
    return None


def interaction_from_row(row: dict) -> Interaction:
    return Interaction(
        drug_a=row["drug_a"],
        drug_b=row["drug_b"],
        severity=InteractionSeverity(row["severity"]),
        description=row.get("description", ""),
        mechanism=row.get("mechanism", ""),
        recommendation=row.get("recommendation", ""),
        evidence_level=row.get("evidence_level", ""),
    )


def default_tables() -> dict[str, list[dict]]:
    """Seed dataset laid out as reference tables."""
    return {
        "drug_interactions": [dict(row) for row in reference_data.DRUG_INTERACTIONS],
        "drug_classes": [
            {"drug": drug, "drug_class": drug_class}
            for drug_class, members in reference_data.DRUG_CLASSES.items()
            for drug in members
        ],
        "cross_reactivity_rules": [dict(row) for row in reference_data.CROSS_REACTIVITY_RULES],
        "allergen_profiles": [
            {"allergen": allergen, **profile}
            for allergen, profile in reference_data.ALLERGEN_PROFILES.items()
        ],
        "contraindications": [dict(row) for row in reference_data.CONTRAINDICATIONS],
        "dose_ranges": [
            {"medication": medication, **dose_range}
            for medication, dose_range in reference_data.DOSE_RANGES.items()
        ],
        "clinical_guidelines": [dict(row) for row in reference_data.CLINICAL_GUIDELINES],
    }


class BaseReferenceStore(ABC):
    """Lookups shared by every reference store backend."""

    name = "reference"

    @property
    @abstractmethod
    def dataset_version(self) -> str:
        """Version tag of the loaded dataset."""

    @abstractmethod
    def _table(self, table: str) -> list[dict] | None:
        """Return all rows of a table, or None if the table is unavailable."""

    def _lookup(self, table: str, predicate) -> ReferenceLookup:
        rows = self._table(table)
        if rows is None:
            return ReferenceLookup.not_configured(f"{self.name}:{table}")
        return ReferenceLookup.found(
            (row for row in rows if predicate(row)), f"{self.name}:{table}"
        )

    # --- Interactions ---

    def find_interactions(self, pairs: Iterable[tuple[str, str]]) -> ReferenceLookup:
        """Find interactions for unordered drug-name pairs."""
        wanted = {frozenset((a.lower(), b.lower())) for a, b in pairs}
        lookup = self._lookup(
            "drug_interactions",
            lambda row: frozenset((row["drug_a"].lower(), row["drug_b"].lower())) in wanted,
        )
        if not lookup.configured:
            return lookup
        return ReferenceLookup.found(
            (interaction_from_row(row) for row in lookup.rows), lookup.source
        )

    def interactions_for(self, name: str) -> ReferenceLookup:
        needle = name.strip().lower()
        lookup = self._lookup(
            "drug_interactions",
            lambda row: needle in (row["drug_a"].lower(), row["drug_b"].lower()),
        )
        if not lookup.configured:
            return lookup
        return ReferenceLookup.found(
            (interaction_from_row(row) for row in lookup.rows), lookup.source
        )

    def all_interactions(self) -> ReferenceLookup:
        lookup = self._lookup("drug_interactions", lambda row: True)
        if not lookup.configured:
            return lookup
        return ReferenceLookup.found(
            (interaction_from_row(row) for row in lookup.rows), lookup.source
        )

    # --- Classes and allergies ---

    def drug_classes(self, name: str) -> ReferenceLookup:
        """Resolve the drug classes a drug (or class name) belongs to."""
        rows = self._table("drug_classes")
        source = f"{self.name}:drug_classes"
        if rows is None:
            return ReferenceLookup.not_configured(source)

        needle = name.strip().lower()
        singular = needle[:-1] if needle.endswith("s") else needle
        known_classes = {row["drug_class"] for row in rows}
        classes = set()
        for row in rows:
            member = row["drug"]
            if member == needle or member in needle:
                classes.add(row["drug_class"])
        for candidate in (needle, singular):
            if candidate in known_classes:
                classes.add(candidate)

        if not classes:
            inferred = infer_drug_class(needle)
            if inferred:
                classes.add(inferred)

        return ReferenceLookup.found(sorted(classes), source)

    def cross_reactivity(
        self, allergy_classes: Iterable[str], drug_classes: Iterable[str]
    ) -> ReferenceLookup:
        allergy_classes = set(allergy_classes)
        drug_classes = set(drug_classes)
        return self._lookup(
            "cross_reactivity_rules",
            lambda row: row["allergy_class"] in allergy_classes
            and row["cross_reactive_class"] in drug_classes,
        )

    def allergen_profile(self, allergen: str) -> ReferenceLookup:
        needle = allergen.strip().lower()
        return self._lookup("allergen_profiles", lambda row: row["allergen"] == needle)

    # --- Contraindications and doses ---

    def contraindications_for(
        self, medication: str, drug_classes: Iterable[str] = ()
    ) -> ReferenceLookup:
        names = {medication.strip().lower(), *drug_classes}
        return self._lookup("contraindications", lambda row: row["medication"] in names)

    def dose_range(self, medication: str) -> ReferenceLookup:
        needle = medication.strip().lower()
        return self._lookup("dose_ranges", lambda row: row["medication"] == needle)

    # --- Guidelines ---

    def guidelines_for(self, condition_codes: Iterable[str]) -> ReferenceLookup:
        """Guidelines whose ICD-10 prefixes cover any of the condition codes."""
        codes = {c.strip().upper() for c in condition_codes if c and c.strip()}
        return self._lookup(
            "clinical_guidelines",
            lambda row: any(
                code.startswith(prefix.upper()) for code in codes for prefix in row.get("icd_codes", ())
            ),
        )

    def search_guidelines(self, query: str) -> ReferenceLookup:
        """Guidelines whose title, condition, summary or category mention ``query``."""
        needle = query.strip().lower()
        return self._lookup(
            "clinical_guidelines",
            lambda row: any(
                needle in str(row.get(key, "")).lower()
                for key in ("title", "condition", "summary", "category")
            ),
        )


class StaticReferenceStore(BaseReferenceStore):
    """In-memory reference store. Tables absent from ``tables`` are unconfigured."""

    name = "static"

    def __init__(self, tables: dict[str, list[dict]] | None = None, version: str | None = None):
        self._tables = default_tables() if tables is None else tables
        self._version = version or reference_data.DATASET_VERSION

    @property
    def dataset_version(self) -> str:
        return self._version

    def _table(self, table: str) -> list[dict] | None:
        return self._tables.get(table)


SCHEMA = """
CREATE TABLE IF NOT EXISTS reference_metadata (
    key TEXT PRIMARY KEY,
    value TEXT
);

CREATE TABLE IF NOT EXISTS drug_interactions (
    drug_a TEXT NOT NULL,
    drug_b TEXT NOT NULL,
    payload TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_interactions_pair ON drug_interactions(drug_a, drug_b);

CREATE TABLE IF NOT EXISTS drug_classes (payload TEXT NOT NULL);
CREATE TABLE IF NOT EXISTS cross_reactivity_rules (payload TEXT NOT NULL);
CREATE TABLE IF NOT EXISTS allergen_profiles (payload TEXT NOT NULL);
CREATE TABLE IF NOT EXISTS contraindications (payload TEXT NOT NULL);
CREATE TABLE IF NOT EXISTS dose_ranges (payload TEXT NOT NULL);
CREATE TABLE IF NOT EXISTS clinical_guidelines (payload TEXT NOT NULL);
"""


class SQLiteReferenceStore(BaseReferenceStore):
    """SQLite-backed reference store.

    The database is opened read-only for lookups. A missing database file or
    a missing table is reported as not configured.
    """

    name = "sqlite"

    def __init__(self, db_path: str):
        """Initialize reference store.

        Args:
            db_path: Path to SQLite database (CLINICAL_REFERENCE_DB_PATH in the
                     service configuration)
        """
        self.db_path = os.path.expanduser(db_path)

    def _connect(self, read_only: bool = True) -> sqlite3.Connection:
        """Get database connection with row factory."""
        if read_only:
            conn = sqlite3.connect(f"file:{self.db_path}?mode=ro", uri=True)
        else:
            db_dir = os.path.dirname(self.db_path)
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)
            conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @property
    def dataset_version(self) -> str:
        try:
            conn = self._connect()
            try:
                row = conn.execute(
                    "SELECT value FROM reference_metadata WHERE key = 'dataset_version'"
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.OperationalError:
            return "unconfigured"
        return row["value"] if row else "unversioned"

    def _table(self, table: str) -> list[dict] | None:
        if table not in REFERENCE_TABLES:
            raise ValueError(f"Unknown reference table: {table}")
        try:
            conn = self._connect()
            try:
                rows = conn.execute(f"SELECT payload FROM {table}").fetchall()
            finally:
                conn.close()
        except sqlite3.OperationalError as e:
            # Missing file or missing table
            logger.warning(f"Reference table {table} unavailable: {e}")
            return None
        return [json.loads(row["payload"]) for row in rows]

    def find_interactions(self, pairs: Iterable[tuple[str, str]]) -> ReferenceLookup:
        source = f"{self.name}:drug_interactions"
        pairs = [(a.lower(), b.lower()) for a, b in pairs]
        try:
            conn = self._connect()
            try:
                rows = []
                for a, b in pairs:
                    rows.extend(
                        conn.execute(
                            """
                            SELECT payload FROM drug_interactions
                            WHERE (drug_a = ? AND drug_b = ?) OR (drug_a = ? AND drug_b = ?)
                            """,
                            (a, b, b, a),
                        ).fetchall()
                    )
            finally:
                conn.close()
        except sqlite3.OperationalError as e:
            logger.warning(f"Interaction table unavailable: {e}")
            return ReferenceLookup.not_configured(source)
        return ReferenceLookup.found(
            (interaction_from_row(json.loads(row["payload"])) for row in rows), source
        )

    # --- Loading ---

    def initialize(self) -> None:
        """Create the reference schema."""
        with self._connect(read_only=False) as conn:
            conn.executescript(SCHEMA)

    def load(self, tables: dict[str, list[dict]], version: str) -> None:
        """Replace the reference dataset with ``tables``."""
        self.initialize()
        conn = self._connect(read_only=False)
        try:
            with conn:
                for table, rows in tables.items():
                    if table not in REFERENCE_TABLES:
                        raise ValueError(f"Unknown reference table: {table}")
                    conn.execute(f"DELETE FROM {table}")
                    if table == "drug_interactions":
                        conn.executemany(
                            "INSERT INTO drug_interactions (drug_a, drug_b, payload) VALUES (?, ?, ?)",
                            [
                                (row["drug_a"].lower(), row["drug_b"].lower(), json.dumps(row))
                                for row in rows
                            ],
                        )
                    else:
                        conn.executemany(
                            f"INSERT INTO {table} (payload) VALUES (?)",
                            [(json.dumps(row),) for row in rows],
                        )
                conn.execute(
                    "INSERT OR REPLACE INTO reference_metadata (key, value) VALUES ('dataset_version', ?)",
                    (version,),
                )
        finally:
            conn.close()
        logger.info(f"Loaded reference dataset {version} into {self.db_path}")

    def seed_defaults(self) -> None:
        """Load the bundled seed dataset."""
        self.load(default_tables(), reference_data.DATASET_VERSION)

    def stats(self) -> dict[str, Any]:
        counts = {}
        for table in REFERENCE_TABLES:
            rows = self._table(table)
            counts[table] = len(rows) if rows is not None else None
        return {"dataset_version": self.dataset_version, "tables": counts}

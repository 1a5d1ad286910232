# academics/marks_import.py
"""
CSV bulk import of marks.

Three stages, each a plain function so callers (API view, management
command, bulk-save form) can reuse them:

  parse_marks_csv  raw text -> CandidateRecord | ParseRejection, in line order
  reconcile        CandidateRecords -> one RowOutcome each, written through a
                   MarkStore with lookup-then-insert/update, strictly in order
  summarize        rejections + outcomes -> ImportSummary

Row and record failures never raise; they end up as notes on the summary.
Nothing already written is rolled back when a later row fails.
"""
import logging
import re
from dataclasses import dataclass, field

from accounts.roles import Principal, can_manage_academics

from .exceptions import ImportForbidden, ImportRejected, MarkStoreError
from .models import EXAM_TYPES

logger = logging.getLogger(__name__)

EXAM_KINDS = tuple(k for k, _ in EXAM_TYPES)
MIN_SCORE = 0
MAX_SCORE = 100

CSV_HEADER = "student_id,marks"
SAMPLE_ROWS = ("student1_id,85", "student2_id,92", "student3_id,78")
SAMPLE_FILENAME = "sample_marks.csv"

_HEADER_TOKENS = ("student_id", "student id", "marks")
_INT_RE = re.compile(r"[+-]?[0-9]+")

REASON_MISSING_FIELD = "missing field"
REASON_INVALID_MARKS = "invalid marks value"
REASON_MALFORMED_ROW = "malformed row"

CLASS_SUCCESS = "success"
CLASS_PARTIAL = "partial"
CLASS_FAILURE = "failure"
CLASS_NO_VALID_ROWS = "no_valid_rows"


@dataclass(frozen=True)
class CandidateRecord:
    row_index: int
    student_key: str
    subject_key: str
    exam_kind: str
    score: int

    @property
    def natural_key(self):
        return (self.student_key, self.subject_key, self.exam_kind)


@dataclass(frozen=True)
class ParseRejection:
    row_index: int
    reason: str


@dataclass(frozen=True)
class RowOutcome:
    row_index: int
    written: bool
    reason: str = ""


@dataclass(frozen=True)
class ImportSummary:
    success_count: int = 0
    error_count: int = 0
    row_notes: tuple = field(default_factory=tuple)  # ((row_index, reason), ...)
    candidate_count: int = 0

    @property
    def classification(self) -> str:
        if self.candidate_count == 0:
            return CLASS_NO_VALID_ROWS
        if self.success_count == 0:
            return CLASS_FAILURE
        if self.error_count == 0:
            return CLASS_SUCCESS
        return CLASS_PARTIAL

    @property
    def message(self) -> str:
        c = self.classification
        if c == CLASS_NO_VALID_ROWS:
            return "No valid data found in the CSV file"
        if c == CLASS_SUCCESS:
            return f"Successfully processed {self.success_count} student records"
        if c == CLASS_PARTIAL:
            return f"Saved {self.success_count} records with {self.error_count} errors"
        return "Failed to save marks. Please check the file and try again."

    def as_dict(self, notes_limit=None):
        notes = self.row_notes if notes_limit is None else self.row_notes[:notes_limit]
        return {
            "success_count": self.success_count,
            "error_count": self.error_count,
            "classification": self.classification,
            "message": self.message,
            "row_notes": [{"row": i, "reason": r} for i, r in notes],
            "notes_truncated": len(notes) < len(self.row_notes),
        }


# =========================
# Parser
# =========================

def parse_int(text: str):
    """Strict integer parse: optional sign and ASCII digits, nothing else."""
    text = (text or "").strip()
    if not _INT_RE.fullmatch(text):
        return None
    return int(text)


def looks_like_header(line: str) -> bool:
    """
    Lenient header check for the first line: a known column token, or a
    second field that is not an integer. A headerless file whose first
    score is junk loses that first row.
    """
    lowered = line.lower()
    if any(token in lowered for token in _HEADER_TOKENS):
        return True
    fields = line.split(",")
    return len(fields) < 2 or parse_int(fields[1]) is None


def validate_score(raw) -> int | None:
    score = parse_int(str(raw)) if raw is not None else None
    if score is None or score < MIN_SCORE or score > MAX_SCORE:
        return None
    return score


def parse_marks_csv(text: str, subject_key: str, exam_kind: str) -> list:
    """
    Returns CandidateRecord / ParseRejection items in input order. Row
    indexes are 1-based line numbers. Blank lines produce nothing.
    """
    lines = (text or "").split("\n")
    outcomes = []
    start = 1 if lines and looks_like_header(lines[0]) else 0

    for idx in range(start, len(lines)):
        line = lines[idx].strip()
        if not line:
            continue
        row_index = idx + 1

        fields = line.split(",")
        if len(fields) > 2:
            # quoted cells ("Doe, John") are not supported
            outcomes.append(ParseRejection(row_index, REASON_MALFORMED_ROW))
            continue
        student_key = fields[0].strip()
        score_raw = fields[1].strip() if len(fields) > 1 else ""
        if not student_key or not score_raw:
            outcomes.append(ParseRejection(row_index, REASON_MISSING_FIELD))
            continue

        score = validate_score(score_raw)
        if score is None:
            outcomes.append(ParseRejection(row_index, REASON_INVALID_MARKS))
            continue

        outcomes.append(CandidateRecord(row_index, student_key, str(subject_key), exam_kind, score))
    return outcomes


def candidates_from_entries(entries: dict, subject_key: str, exam_kind: str) -> list:
    """
    Same validation for the on-screen marks table, {student_id: marks}.
    Row index is the 1-based position in the mapping.
    """
    outcomes = []
    for i, (student_key, raw) in enumerate(entries.items(), start=1):
        student_key = str(student_key).strip()
        if not student_key or raw is None or str(raw).strip() == "":
            outcomes.append(ParseRejection(i, REASON_MISSING_FIELD))
            continue
        score = validate_score(raw)
        if score is None:
            outcomes.append(ParseRejection(i, REASON_INVALID_MARKS))
            continue
        outcomes.append(CandidateRecord(i, student_key, str(subject_key), exam_kind, score))
    return outcomes


def sample_marks_csv() -> str:
    return "\n".join((CSV_HEADER,) + SAMPLE_ROWS) + "\n"


# =========================
# Reconciler
# =========================

def reconcile(records, store) -> list[RowOutcome]:
    """
    One lookup plus one write per record, strictly in order, so a key that
    appears twice ends with the later score. Uses the first match when the
    store already holds duplicates for a key.
    """
    outcomes = []
    for rec in records:
        try:
            existing = store.find_by_key(rec.student_key, rec.subject_key, rec.exam_kind)
        except MarkStoreError as e:
            logger.warning("marks lookup failed for %s: %s", rec.natural_key, e)
            outcomes.append(RowOutcome(rec.row_index, False, "lookup error"))
            continue

        try:
            if existing:
                store.update(existing[0].id, rec.score)
            else:
                store.insert(rec.student_key, rec.subject_key, rec.exam_kind, rec.score)
        except MarkStoreError as e:
            logger.warning("marks %s failed for %s: %s", e.reason, rec.natural_key, e)
            outcomes.append(RowOutcome(rec.row_index, False, e.reason))
            continue

        outcomes.append(RowOutcome(rec.row_index, True))
    return outcomes


# =========================
# Aggregator
# =========================

def summarize(parsed, outcomes) -> ImportSummary:
    rejections = [p for p in parsed if isinstance(p, ParseRejection)]
    candidate_count = sum(1 for p in parsed if isinstance(p, CandidateRecord))
    failed = [o for o in outcomes if not o.written]

    notes = tuple((r.row_index, r.reason) for r in rejections)
    notes += tuple((o.row_index, o.reason) for o in failed)

    return ImportSummary(
        success_count=sum(1 for o in outcomes if o.written),
        error_count=len(rejections) + len(failed),
        row_notes=notes,
        candidate_count=candidate_count,
    )


def check_import_allowed(principal: Principal | None, subject_key, exam_kind):
    if not can_manage_academics(principal):
        raise ImportForbidden("Only teachers can import marks")
    if not subject_key:
        raise ImportRejected("subject is required")
    if exam_kind not in EXAM_KINDS:
        raise ImportRejected(f"exam_type must be one of: {', '.join(EXAM_KINDS)}")


def run_pipeline(parsed, store) -> ImportSummary:
    records = [p for p in parsed if isinstance(p, CandidateRecord)]
    outcomes = reconcile(records, store)
    return summarize(parsed, outcomes)


def import_marks_csv(principal, text, subject_key, exam_kind, store) -> ImportSummary:
    """Parse, reconcile and summarize one uploaded file."""
    check_import_allowed(principal, subject_key, exam_kind)
    parsed = parse_marks_csv(text, str(subject_key), exam_kind)
    summary = run_pipeline(parsed, store)
    logger.info(
        "marks import by user %s subject=%s exam=%s: %s ok, %s errors (%s)",
        principal.user_id, subject_key, exam_kind,
        summary.success_count, summary.error_count, summary.classification,
    )
    return summary


def save_marks_entries(principal, entries, subject_key, exam_kind, store) -> ImportSummary:
    """Bulk-save from the marks table; same reconciliation as a CSV import."""
    check_import_allowed(principal, subject_key, exam_kind)
    parsed = candidates_from_entries(entries, str(subject_key), exam_kind)
    return run_pipeline(parsed, store)

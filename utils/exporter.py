import csv
import io
from typing import Any, Dict, Iterable, List

CSV_COLUMNS = ["Date", "Type", "Title", "Score", "Status"]


def progress_row(record: Any) -> Dict[str, Any]:
    """Flatten a progress record (with lesson/quiz loaded) into one export row."""
    if record.lesson_id is not None:
        kind = "Lesson"
    elif record.quiz_id is not None:
        kind = "Quiz"
    else:
        kind = "Other"

    title = None
    if record.lesson is not None:
        title = record.lesson.title
    elif record.quiz is not None:
        title = record.quiz.title

    if record.completed:
        status = "Completed"
    elif record.passed:
        status = "Passed"
    else:
        status = "In Progress"

    return {
        "Date": record.created_at.date().isoformat(),
        "Type": kind,
        "Title": title or "Unknown",
        "Score": f"{record.score:.1f}" if record.quiz_id is not None else "N/A",
        "Status": status,
    }


def generate_progress_csv(records: Iterable[Any]) -> io.StringIO:
    """Generates a CSV export of progress records; header only when empty."""
    rows: List[Dict[str, Any]] = [progress_row(r) for r in records]

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    buffer.seek(0)
    return buffer

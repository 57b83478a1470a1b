import csv
from datetime import datetime
from types import SimpleNamespace

from utils.exporter import CSV_COLUMNS, generate_progress_csv, progress_row


def record(**kwargs):
    defaults = dict(
        created_at=datetime(2024, 5, 1, 10),
        lesson_id=None,
        quiz_id=None,
        lesson=None,
        quiz=None,
        score=0.0,
        completed=False,
        passed=False,
    )
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def test_empty_export_has_only_header():
    buffer = generate_progress_csv([])
    assert buffer.getvalue() == "Date,Type,Title,Score,Status\n"


def test_rows():
    lesson_row = progress_row(record(lesson_id=1, lesson=SimpleNamespace(title="Deserts"), completed=True))
    quiz_row = progress_row(record(quiz_id=2, quiz=SimpleNamespace(title="Dunes"), score=66.666, passed=True))
    other_row = progress_row(record())

    assert lesson_row == {"Date": "2024-05-01", "Type": "Lesson", "Title": "Deserts", "Score": "N/A", "Status": "Completed"}
    assert quiz_row["Score"] == "66.7"
    assert quiz_row["Status"] == "Passed"
    assert other_row["Type"] == "Other"
    assert other_row["Title"] == "Unknown"
    assert other_row["Status"] == "In Progress"


def test_csv_is_parseable():
    buffer = generate_progress_csv([
        record(quiz_id=2, quiz=SimpleNamespace(title='Capitals, "hard"'), score=100.0, completed=True, passed=True),
    ])

    rows = list(csv.DictReader(buffer))
    assert list(rows[0].keys()) == CSV_COLUMNS
    assert rows[0]["Title"] == 'Capitals, "hard"'
    assert rows[0]["Status"] == "Completed"

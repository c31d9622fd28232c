"""QALD-style evaluation of the synthesis engine.

Dataset format (JSON)::

    {"questions": [
        {
            "id": "q1",
            "question": "Which books were written by Dan Brown?",
            "pseudo_query": {"focus": "book", "triples": [["?book", "author", "Dan Brown"]]},
            "answers": ["http://dbpedia.org/resource/The_Da_Vinci_Code", "..."]
        }
    ]}

A bare list of entries is accepted as well.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .errors import InputError, LookupFailure
from .io import pseudo_query_from_dict

logger = logging.getLogger(__name__)


def _f1(precision: float, recall: float) -> float:
    if precision + recall == 0:
        return 0.0
    return 2 * precision * recall / (precision + recall)


class PrecisionRecallMeter:
    """
    Accumulates precision/recall over test questions.

    Unanswered questions count as precision 1 and recall 0. Micro averages
    are means over questions; macro averages are computed over all answers
    pooled together.
    """

    def __init__(self):
        self.measurements = 0
        self.non_empty_measurements = 0
        self.recall_sum = 0.0
        self.precision_sum = 0.0
        self.f1_sum = 0.0
        self.correct = 0
        self.partially_correct = 0
        self.incorrect = 0
        self.answers_given = 0
        self.answers_given_correct = 0
        self.answers_gold = 0

    def new_test_case(self, expected: set[str]) -> None:
        """Register a question (call once per question, answered or not)."""
        self.measurements += 1
        self.answers_gold += len(expected)

    def add_measurement(self, expected: set[str], actual: set[str]) -> str:
        """
        Record the answers given to a question.

        Returns:
            "correct", "partially correct" or "incorrect"
        """
        self.answers_given += len(actual)
        if not expected or not actual:
            return self.add_wrong_measurement()

        self.non_empty_measurements += 1
        hits = expected & actual
        self.answers_given_correct += len(hits)
        recall = len(hits) / len(expected)
        precision = len(hits) / len(actual)
        self.recall_sum += recall
        self.precision_sum += precision
        self.f1_sum += _f1(precision, recall)

        if expected == actual:
            self.correct += 1
            return "correct"
        if hits:
            self.partially_correct += 1
            return "partially correct"
        self.incorrect += 1
        return "incorrect"

    def add_wrong_measurement(self) -> str:
        self.non_empty_measurements += 1
        self.incorrect += 1
        return "incorrect"

    @property
    def micro_recall(self) -> float:
        return self.recall_sum / self.measurements if self.measurements else 0.0

    @property
    def micro_precision(self) -> float:
        if not self.measurements:
            return 0.0
        # An empty measurement is precision 1
        empty = self.measurements - self.non_empty_measurements
        return (self.precision_sum + empty) / self.measurements

    @property
    def micro_f1(self) -> float:
        return self.f1_sum / self.measurements if self.measurements else 0.0

    @property
    def macro_recall(self) -> float:
        return self.answers_given_correct / self.answers_gold if self.answers_gold else 0.0

    @property
    def macro_precision(self) -> float:
        return self.answers_given_correct / self.answers_given if self.answers_given else 0.0

    def summary(self) -> dict:
        return {
            "measurements": self.measurements,
            "non_empty_measurements": self.non_empty_measurements,
            "micro_precision": self.micro_precision,
            "micro_recall": self.micro_recall,
            "micro_f1": self.micro_f1,
            "f1_of_micro_averages": _f1(self.micro_precision, self.micro_recall),
            "macro_precision": self.macro_precision,
            "macro_recall": self.macro_recall,
            "f1_of_macro_averages": _f1(self.macro_precision, self.macro_recall),
            "correct": self.correct,
            "partially_correct": self.partially_correct,
            "incorrect": self.incorrect,
        }


@dataclass
class EntryResult:
    """Result of a single dataset entry."""

    entry_id: str
    question: str
    expected: list[str] = field(default_factory=list)
    actual: list[str] = field(default_factory=list)
    sparql: Optional[str] = None
    status: str = "unanswered"
    error: Optional[str] = None
    time: float = 0.0


@dataclass
class EvaluationReport:
    """Overall evaluation report."""

    total: int = 0
    answered: int = 0
    errors: int = 0
    metrics: dict = field(default_factory=dict)
    results: list[EntryResult] = field(default_factory=list)


def load_dataset(path: Union[str, Path]) -> list[dict]:
    """Load dataset entries from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise InputError(f"Invalid JSON in {path}: {e}") from e
    if isinstance(data, dict):
        data = data.get("questions", [])
    if not isinstance(data, list):
        raise InputError(f"{path}: expected a list of questions")
    return data


def evaluate_dataset(engine, entries: list[dict]) -> EvaluationReport:
    """
    Answer every entry with the engine and measure precision/recall.

    Malformed entries and failed lookups are counted as errors (and as
    unanswered); GatewayUnavailable propagates.

    Args:
        engine: QuerySynthesisEngine (or anything with a compatible ``answer``)
        entries: Dataset entries

    Returns:
        EvaluationReport
    """
    meter = PrecisionRecallMeter()
    report = EvaluationReport(total=len(entries))

    for i, entry in enumerate(entries):
        expected = {str(a) for a in entry.get("answers", [])}
        result = EntryResult(
            entry_id=str(entry.get("id", i)),
            question=entry.get("question", ""),
            expected=sorted(expected),
        )
        meter.new_test_case(expected)

        start_time = time.time()
        try:
            pseudo_query = pseudo_query_from_dict(entry.get("pseudo_query"))
            answer = engine.answer(pseudo_query)
        except (InputError, LookupFailure) as e:
            logger.warning("Entry %s: %s", result.entry_id, e)
            result.error = str(e)
            result.time = time.time() - start_time
            report.errors += 1
            report.results.append(result)
            continue
        result.time = time.time() - start_time

        if answer.answered:
            actual = {binding.value for binding in answer.answers}
            result.actual = sorted(actual)
            result.sparql = answer.sparql
            result.status = meter.add_measurement(expected, actual)
            report.answered += 1
        report.results.append(result)

    report.metrics = meter.summary()
    return report


def print_report(report: EvaluationReport) -> None:
    """Print evaluation report to console."""
    m = report.metrics
    print("\n" + "=" * 60)
    print("PQ2SPARQL EVALUATION REPORT")
    print("=" * 60)

    print("\nOverall Results:")
    print(f"  Questions:          {report.total}")
    print(f"  Answered:           {report.answered}")
    print(f"  Unanswered:         {report.total - report.answered}")
    print(f"  Errors:             {report.errors}")
    print(f"  Correct:            {m.get('correct', 0)}")
    print(f"  Partially correct:  {m.get('partially_correct', 0)}")
    print(f"  Incorrect:          {m.get('incorrect', 0)}")

    print("\nMetrics:")
    print(f"  Micro precision:    {m.get('micro_precision', 0.0):.2%}")
    print(f"  Micro recall:       {m.get('micro_recall', 0.0):.2%}")
    print(f"  Micro F1:           {m.get('micro_f1', 0.0):.2%}")
    print(f"  F1 of micro avgs:   {m.get('f1_of_micro_averages', 0.0):.2%}")
    print(f"  Macro precision:    {m.get('macro_precision', 0.0):.2%}")
    print(f"  Macro recall:       {m.get('macro_recall', 0.0):.2%}")
    print(f"  F1 of macro avgs:   {m.get('f1_of_macro_averages', 0.0):.2%}")

    failures = [r for r in report.results if r.status != "correct"]
    if failures:
        print(f"\nNot Correct ({len(failures)}):")
        for r in failures[:10]:  # Show first 10
            print(f"  {r.entry_id}: {r.question[:50]} [{r.status}]")
            if r.error:
                print(f"    Error: {r.error[:80]}")


def save_report(report: EvaluationReport, path: Union[str, Path]) -> None:
    """Save evaluation report to JSON file."""
    data = {
        "summary": {
            "total": report.total,
            "answered": report.answered,
            "errors": report.errors,
            **report.metrics,
        },
        "results": [
            {
                "id": r.entry_id,
                "question": r.question,
                "status": r.status,
                "expected": r.expected,
                "actual": r.actual,
                "sparql": r.sparql,
                "error": r.error,
                "time": r.time,
            }
            for r in report.results
        ],
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

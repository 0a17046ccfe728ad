"""Benchmark helper for change-tracking latency (content diff, outline diff, conflicts)."""
from __future__ import annotations

import argparse
import json
import statistics
from dataclasses import dataclass
from pathlib import Path
from time import perf_counter
from typing import Callable, Sequence

from penwright.documents.models import OutlineSection
from penwright.sync import compute_content_diff, compute_outline_diff, detect_outline_draft_conflicts
from penwright.utils.file_io import read_text


@dataclass(slots=True)
class BenchmarkResult:
    label: str
    sections: int
    size_bytes: int
    content_ms: float
    outline_ms: float
    conflicts_ms: float
    summary: str
    conflict_count: int

    @property
    def size_kb(self) -> float:
        return self.size_bytes / 1024


def _synthetic_draft(sections: int, paragraphs: int = 4) -> tuple[str, tuple[OutlineSection, ...]]:
    outline = tuple(
        OutlineSection(id=f"s{index}", title=f"Section {index}", description=f"Covers point {index}.")
        for index in range(sections)
    )
    body = []
    for section in outline:
        body.append(f"## {section.title}")
        for paragraph in range(paragraphs):
            body.append(f"Paragraph {paragraph} of {section.title.lower()} explains the idea in plain words.")
        body.append("")
    return "\n".join(body), outline


def _default_cases() -> Sequence[tuple[str, str, tuple[OutlineSection, ...]]]:
    cases = []
    for sections in (5, 50, 500):
        draft, outline = _synthetic_draft(sections)
        cases.append((f"{sections} sections", draft, outline))
    return cases


def _file_case(label: str, path: Path) -> tuple[str, str, tuple[OutlineSection, ...]]:
    text = read_text(path)
    titles = [line[3:].strip() for line in text.splitlines() if line.startswith("## ")]
    outline = tuple(OutlineSection(id=f"s{index}", title=title) for index, title in enumerate(titles))
    return label, text, outline


def _mutate(draft: str, outline: tuple[OutlineSection, ...]) -> tuple[str, tuple[OutlineSection, ...]]:
    edited = draft.replace("plain words", "simpler words", max(1, draft.count("plain words") // 10))
    edited = f"{edited}\n## Appendix\nA closing note added by the writer."
    sections = list(outline)
    if sections:
        sections.pop(len(sections) // 2)
    if len(sections) > 3:
        sections[0], sections[3] = sections[3], sections[0]
    if sections:
        last = sections[-1]
        sections[-1] = OutlineSection(last.id, f"{last.title} (revised)", last.description, 400)
    return edited, tuple(sections)


def _time(fn: Callable[[], object], repeat: int) -> tuple[float, object]:
    timings = []
    result: object = None
    for _ in range(repeat):
        start = perf_counter()
        result = fn()
        timings.append((perf_counter() - start) * 1000)
    return statistics.median(timings), result


def run_benchmarks(
    cases: Sequence[tuple[str, str, tuple[OutlineSection, ...]]], *, repeat: int = 5
) -> list[BenchmarkResult]:
    results: list[BenchmarkResult] = []
    for label, draft, outline in cases:
        edited, revised = _mutate(draft, outline)
        content_ms, diff = _time(lambda: compute_content_diff(draft, edited), repeat)
        outline_ms, _ = _time(lambda: compute_outline_diff(outline, revised), repeat)
        conflicts_ms, report = _time(lambda: detect_outline_draft_conflicts(outline, revised, edited), repeat)
        results.append(
            BenchmarkResult(
                label=label,
                sections=len(outline),
                size_bytes=len(draft.encode("utf-8")),
                content_ms=content_ms,
                outline_ms=outline_ms,
                conflicts_ms=conflicts_ms,
                summary=diff.summary,  # type: ignore[attr-defined]
                conflict_count=len(report.conflicts),  # type: ignore[attr-defined]
            )
        )
    return results


def main() -> None:
    parser = argparse.ArgumentParser(description="Measure change-tracking latency on synthetic or real drafts.")
    parser.add_argument(
        "--case",
        action="append",
        metavar="LABEL=PATH",
        help="Markdown draft to benchmark instead of the synthetic cases; can be supplied multiple times.",
    )
    parser.add_argument("--repeat", type=int, default=5, help="Runs per measurement (median is reported).")
    parser.add_argument("--json", action="store_true", help="Emit machine-readable JSON results.")
    args = parser.parse_args()

    if args.case:
        cases = []
        for raw in args.case:
            if "=" not in raw:
                parser.error(f"Invalid --case '{raw}'. Expected LABEL=PATH format.")
            label, value = raw.split("=", 1)
            cases.append(_file_case(label.strip(), Path(value).expanduser()))
    else:
        cases = list(_default_cases())

    results = run_benchmarks(cases, repeat=max(1, args.repeat))

    if args.json:
        payload = [
            {
                "label": result.label,
                "sections": result.sections,
                "size_kb": result.size_kb,
                "content_ms": result.content_ms,
                "outline_ms": result.outline_ms,
                "conflicts_ms": result.conflicts_ms,
                "conflicts": result.conflict_count,
                "summary": result.summary,
            }
            for result in results
        ]
        print(json.dumps(payload, indent=2))
        return

    max_label = max(len(result.label) for result in results)
    header = (
        f"{'Document':<{max_label}}  Size (KB)  Sections  Content (ms)  Outline (ms)  "
        "Conflicts (ms)  Conflicts  Summary"
    )
    print(header)
    print("-" * len(header))
    for result in results:
        print(
            f"{result.label:<{max_label}}  "
            f"{result.size_kb:>9.1f}  "
            f"{result.sections:>8,}  "
            f"{result.content_ms:>12.3f}  "
            f"{result.outline_ms:>12.3f}  "
            f"{result.conflicts_ms:>14.3f}  "
            f"{result.conflict_count:>9}  "
            f"{result.summary}"
        )

    runtimes = [result.content_ms + result.outline_ms + result.conflicts_ms for result in results]
    print()
    print(
        "Total runtime stats → min: "
        f"{min(runtimes):.3f} ms · median: {statistics.median(runtimes):.3f} ms · max: {max(runtimes):.3f} ms"
    )


if __name__ == "__main__":
    main()

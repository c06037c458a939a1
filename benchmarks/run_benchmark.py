#!/usr/bin/env python3
"""
Benchmark suite for markup-compressor.

Measures compression ratio, character savings and timing for every option
profile across all corpus files.

Usage:
    python benchmarks/run_benchmark.py                 # basic run
    python benchmarks/run_benchmark.py --corpus pages/  # use another corpus
    python benchmarks/run_benchmark.py --output results.json  # save to file
    python benchmarks/run_benchmark.py --iterations 20  # average over 20 runs
"""

from __future__ import annotations

import argparse
import json
import platform
import statistics
import sys
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path

# Ensure the src package is importable when running from repo root.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_PROJECT_ROOT / "src"))

from markup_compressor import HtmlOptions, XmlOptions, compress, detect_dialect  # noqa: E402


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class ProfileResult:
    """Benchmark result for a single (file, profile) combination."""

    profile: str
    original_chars: int
    compressed_chars: int
    ratio: float
    savings_pct: float
    mean_time_ms: float
    median_time_ms: float
    min_time_ms: float
    max_time_ms: float


@dataclass(slots=True)
class FileResult:
    """Benchmark results for a single corpus file across all profiles."""

    filename: str
    dialect: str
    original_chars: int
    profiles: list[ProfileResult] = field(default_factory=list)


@dataclass(slots=True)
class BenchmarkReport:
    """Full benchmark report."""

    timestamp: str
    python_version: str
    platform: str
    iterations: int
    files: list[FileResult] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Option profiles
# ---------------------------------------------------------------------------

HTML_PROFILES: dict[str, HtmlOptions] = {
    "default": HtmlOptions(),
    "intertag": HtmlOptions(remove_intertag_spaces=True),
    "max": HtmlOptions(
        remove_intertag_spaces=True,
        remove_quotes=True,
        compress_js=True,
        compress_css=True,
    ),
}

XML_PROFILES: dict[str, XmlOptions] = {
    "default": XmlOptions(),
    "comments": XmlOptions(remove_intertag_spaces=False),
}

CORPUS_SUFFIXES = (".html", ".htm", ".jsp", ".xml")


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

_SEP = "-" * 90
_HEADER_FMT = "  {:<10s} {:>10s} {:>10s} {:>8s} {:>8s} {:>10s} {:>10s}"
_ROW_FMT = "  {:<10s} {:>10,d} {:>10,d} {:>7.1f}% {:>7.1f}% {:>9.2f}ms {:>9.2f}ms"


def _print_table_header() -> None:
    print(_HEADER_FMT.format(
        "Profile", "Orig", "Comp", "Ratio", "Saved", "Mean(ms)", "Med(ms)"
    ))


def _print_table_row(r: ProfileResult) -> None:
    print(_ROW_FMT.format(
        r.profile,
        r.original_chars,
        r.compressed_chars,
        r.ratio * 100,
        r.savings_pct,
        r.mean_time_ms,
        r.median_time_ms,
    ))


# ---------------------------------------------------------------------------
# Core benchmark logic
# ---------------------------------------------------------------------------


def benchmark_text(
    text: str,
    dialect: str,
    *,
    iterations: int = 10,
) -> list[ProfileResult]:
    """Run compression with every profile of *dialect* and return results."""
    profiles = XML_PROFILES if dialect == "xml" else HTML_PROFILES
    results: list[ProfileResult] = []

    for name, options in profiles.items():
        timings: list[float] = []
        compressed = ""

        for _ in range(iterations):
            t0 = time.perf_counter()
            compressed = compress(text, dialect=dialect, options=options)
            t1 = time.perf_counter()
            timings.append((t1 - t0) * 1000)  # ms

        orig_len = len(text)
        comp_len = len(compressed)
        ratio = comp_len / orig_len if orig_len > 0 else 1.0

        results.append(ProfileResult(
            profile=name,
            original_chars=orig_len,
            compressed_chars=comp_len,
            ratio=ratio,
            savings_pct=(1.0 - ratio) * 100.0,
            mean_time_ms=statistics.mean(timings),
            median_time_ms=statistics.median(timings),
            min_time_ms=min(timings),
            max_time_ms=max(timings),
        ))

    return results


def run_benchmark(
    corpus_dir: Path,
    *,
    iterations: int = 10,
    output_path: Path | None = None,
) -> BenchmarkReport:
    """Run the full benchmark over all corpus files."""

    import datetime

    report = BenchmarkReport(
        timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(),
        python_version=platform.python_version(),
        platform=platform.platform(),
        iterations=iterations,
    )

    corpus_files = sorted(
        fp for fp in corpus_dir.iterdir() if fp.suffix.lower() in CORPUS_SUFFIXES
    ) if corpus_dir.is_dir() else []
    if not corpus_files:
        print(f"No markup files found in {corpus_dir}")
        sys.exit(1)

    print("\nmarkup-compressor benchmark")
    print(f"Python {platform.python_version()} on {platform.platform()}")
    print(f"Iterations per profile: {iterations}")
    print(_SEP)

    for fp in corpus_files:
        text = fp.read_text(encoding="utf-8")
        dialect = detect_dialect(fp)

        print(f"\n  File: {fp.name} ({dialect}, {len(text):,d} chars)")
        _print_table_header()

        fr = FileResult(
            filename=fp.name,
            dialect=dialect,
            original_chars=len(text),
            profiles=benchmark_text(text, dialect, iterations=iterations),
        )
        report.files.append(fr)

        for pr in fr.profiles:
            _print_table_row(pr)

    # Summary per dialect and profile
    print(f"\n{_SEP}")
    print("  AGGREGATE SUMMARY")
    print(_SEP)

    for dialect, profiles in (("html", HTML_PROFILES), ("xml", XML_PROFILES)):
        files = [fr for fr in report.files if fr.dialect == dialect]
        if not files:
            continue
        print(f"\n  {dialect.upper()} ({len(files)} file(s))")
        _print_table_header()

        for name in profiles:
            matching = [pr for fr in files for pr in fr.profiles if pr.profile == name]
            all_orig = sum(pr.original_chars for pr in matching)
            all_comp = sum(pr.compressed_chars for pr in matching)
            ratio = all_comp / all_orig if all_orig > 0 else 1.0

            _print_table_row(ProfileResult(
                profile=name,
                original_chars=all_orig,
                compressed_chars=all_comp,
                ratio=ratio,
                savings_pct=(1.0 - ratio) * 100.0,
                mean_time_ms=statistics.mean(pr.mean_time_ms for pr in matching),
                median_time_ms=statistics.median(pr.median_time_ms for pr in matching),
                min_time_ms=0.0,
                max_time_ms=0.0,
            ))

    print()

    # Optionally write JSON
    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(asdict(report), indent=2), encoding="utf-8")
        print(f"  Results saved to {output_path}")
        print()

    return report


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Benchmark suite for markup-compressor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--corpus",
        type=Path,
        default=Path(__file__).resolve().parent / "corpus",
        help="Directory with .html/.jsp/.xml corpus files (default: benchmarks/corpus/)",
    )
    parser.add_argument(
        "--iterations",
        type=int,
        default=10,
        help="Number of iterations per (file, profile) to average timing (default: 10)",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Path to save JSON results (e.g. benchmarks/results.json)",
    )
    args = parser.parse_args()

    run_benchmark(
        corpus_dir=args.corpus,
        iterations=args.iterations,
        output_path=args.output,
    )


if __name__ == "__main__":
    main()

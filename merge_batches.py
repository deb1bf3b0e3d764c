#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
merge_batches.py

Deterministic multi-batch merger for batch-level calcium analysis tables.

Input:
- Recursively scan an input folder for .csv files (case-insensitive), typically
  the per-batch merged.csv files produced by the upstream batch step.
- batch_id = first subfolder under the input folder, else "ROOT".

Output CSVs (utf-8-sig), written to the output folder:
- merged_raw.csv          (provenance-tagged union of all files, before filtering)
- merged_filtered.csv     (rows passing the quality filters)
- file_merge_report.csv   (per-file rows read / kept / removed)
- duplicate_wells.csv     (only when duplicate wells are detected)
- merge_summary.json      (run-level totals)

Logs:
- Console + logs/batch_merge.log

Provenance columns (always win on a name collision):
- source_file   (file name without extension)
- source_path   (resolved absolute path)
- batch_id

Quality filters (applied in order, each stage counted):
- peaks: Num.Peaks coerced to numeric (after trimming) must be >= 2
- well:  Well trimmed + upper-cased must be a 96-well ID A01..H12

Fatal conditions (exit status 2):
- no .csv files found
- every file failed to read
- a required filter column is missing after the merge

Dependencies:
- pandas
"""

from __future__ import annotations

import argparse
import csv
import json
import logging
import os
import re
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd
from pandas.api.types import is_scalar


# -----------------------
# Defaults / conventions
# -----------------------

PEAKS_COLUMN = "Num.Peaks"
WELL_COLUMN = "Well"
MIN_PEAKS = 2

# Strict 96-well plate coordinate, zero-padded
WELL_REGEX = re.compile(r"^[A-H](0[1-9]|1[0-2])$")

ROOT_BATCH_ID = "ROOT"

SOURCE_FILE_COL = "source_file"
SOURCE_PATH_COL = "source_path"
BATCH_ID_COL = "batch_id"
PROVENANCE_FIELDS = [SOURCE_FILE_COL, SOURCE_PATH_COL, BATCH_ID_COL]
REPORT_KEY = [SOURCE_PATH_COL, SOURCE_FILE_COL, BATCH_ID_COL]

STATUS_OK = "OK"
STATUS_READ_FAIL = "READ_FAIL"

# Metadata columns expected from the upstream step (reported, never required)
METADATA_COLUMNS = ["Batch", "Group", "RowGroup"]

INPUT_EXTENSIONS = (".csv",)
LOCK_FILE_PREFIXES = ("~$", ".~lock")

# Separator sniffing
SNIFF_SAMPLE_BYTES = 64 * 1024
SNIFF_DELIMITERS = ",\t;|"
DEFAULT_DELIMITER = ","

RAW_OUTPUT_NAME = "merged_raw.csv"
FILTERED_OUTPUT_NAME = "merged_filtered.csv"
REPORT_OUTPUT_NAME = "file_merge_report.csv"
DUPLICATES_OUTPUT_NAME = "duplicate_wells.csv"
SUMMARY_OUTPUT_NAME = "merge_summary.json"

INPUT_ENCODING = "utf-8-sig"
OUTPUT_ENCODING = "utf-8-sig"

REPORT_COLUMNS = REPORT_KEY + ["rows_read", "status", "rows_kept", "rows_removed"]


# ---------
# Errors
# ---------

class MergePipelineError(Exception):
    """Base class for all pipeline errors."""


class NoInputFilesError(MergePipelineError):
    pass


class FileReadError(MergePipelineError):
    def __init__(self, path: Path, reason: str):
        super().__init__(f"Failed reading {path}: {reason}")
        self.path = path
        self.reason = reason


class AllReadsFailedError(MergePipelineError):
    pass


class RequiredColumnMissingError(MergePipelineError):
    def __init__(self, column: str):
        super().__init__(f"Column '{column}' not found in merged data.")
        self.column = column


# -------------
# Data classes
# -------------

@dataclass
class MergeConfig:
    input_root: Path
    output_root: Path
    peaks_column: str = PEAKS_COLUMN
    well_column: str = WELL_COLUMN
    min_peaks: float = MIN_PEAKS
    filtered_name: str = FILTERED_OUTPUT_NAME
    metadata_columns: List[str] = field(default_factory=lambda: list(METADATA_COLUMNS))
    workers: int = 1


@dataclass(frozen=True)
class FileDescriptor:
    path: Path
    source_path: str
    source_file: str
    batch_id: str


@dataclass
class FileReport:
    source_path: str
    source_file: str
    batch_id: str
    rows_read: Optional[int]
    status: str


@dataclass
class LoadResult:
    descriptor: FileDescriptor
    table: Optional[pd.DataFrame]
    report: FileReport
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.table is not None


@dataclass(frozen=True)
class FilterStage:
    name: str
    column: str
    predicate: Callable[[pd.Series], pd.Series]
    # Optional rewrite of the column for the surviving rows
    normalize: Optional[Callable[[pd.Series], pd.Series]] = None


@dataclass
class StageResult:
    name: str
    column: str
    rows_in: int
    rows_removed: int


@dataclass
class RunSummary:
    files_found: int = 0
    files_ok: int = 0
    files_failed: int = 0
    rows_raw: int = 0
    columns_raw: int = 0
    removed_by_stage: Dict[str, int] = field(default_factory=dict)
    rows_removed_total: int = 0
    rows_final: int = 0
    duplicate_well_rows: int = 0
    missing_metadata: Dict[str, Optional[int]] = field(default_factory=dict)
    outputs: Dict[str, str] = field(default_factory=dict)


# ----------
# Logging
# ----------

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "batch_merge.log"


def setup_logging(
    log_dir: Path,
    console_level: int = logging.INFO,
    file_level: int = logging.INFO,
) -> logging.Logger:
    """
    Console + <log_dir>/batch_merge.log. Calling it again replaces the
    handlers from the previous call, so each run logs to its own log_dir.
    """
    logger = logging.getLogger("batch_merge")
    logger.setLevel(min(console_level, file_level))

    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    fmt = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    fh = logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)

    sh = logging.StreamHandler(sys.stdout)
    sh.setLevel(console_level)
    sh.setFormatter(fmt)

    logger.addHandler(fh)
    logger.addHandler(sh)
    return logger


# ---------------
# File discovery
# ---------------

def _is_within(path: Path, folder: Path) -> bool:
    try:
        path.relative_to(folder)
        return True
    except ValueError:
        return False


def discover_input_files(
    root: Path,
    exclude: Optional[Path] = None,
    output_names: Sequence[str] = (),
    logger: Optional[logging.Logger] = None,
) -> List[Path]:
    """
    Recursively find .csv files (case-insensitive) under root.

    Order is fixed by the POSIX form of each path relative to root, so re-runs
    over an unchanged folder produce the same merged row order.

    `exclude` is the output folder. When it sits strictly inside root its
    whole subtree is skipped. When it is root itself or an ancestor of root,
    only files directly in it that carry one of `output_names` are skipped.
    """
    logger = logger or logging.getLogger("batch_merge")
    root = Path(root)
    if not root.is_dir():
        raise NoInputFilesError(f"Input folder not found: {root}")

    root_resolved = root.resolve()
    excluded_tree: Optional[Path] = None
    output_folder: Optional[Path] = None
    if exclude is not None:
        out_resolved = Path(exclude).resolve()
        if out_resolved != root_resolved and _is_within(out_resolved, root_resolved):
            excluded_tree = out_resolved
        else:
            output_folder = out_resolved
    skip_names = set(output_names)

    files: List[Path] = []
    for p in root.rglob("*"):
        if not p.is_file():
            continue
        if p.suffix.lower() not in INPUT_EXTENSIONS:
            continue
        if p.name.startswith(LOCK_FILE_PREFIXES):
            logger.debug(f"Skipping lock file: {p}")
            continue
        resolved = p.resolve()
        if excluded_tree is not None and _is_within(resolved, excluded_tree):
            logger.debug(f"Skipping file inside output folder: {p}")
            continue
        if output_folder is not None and resolved.parent == output_folder and p.name in skip_names:
            logger.debug(f"Skipping previous output: {p}")
            continue
        files.append(p)

    if not files:
        raise NoInputFilesError(f"No .csv files found under: {root}")

    files.sort(key=lambda p: p.relative_to(root).as_posix())
    return files


# ---------------------------
# Batch identifier inference
# ---------------------------

def infer_batch_id(file_path: Path, root: Path) -> str:
    """
    batch_id = first folder under root in the file's relative path; else "ROOT".
    """
    for resolve in (True, False):
        rel = _relative_path(Path(file_path), Path(root), resolve)
        if rel is None:
            continue
        if len(rel.parts) >= 2:
            return rel.parts[0]
        return ROOT_BATCH_ID
    return ROOT_BATCH_ID


def _relative_path(file_path: Path, root: Path, resolve: bool) -> Optional[Path]:
    try:
        if resolve:
            return file_path.resolve().relative_to(root.resolve())
        return Path(os.path.abspath(file_path)).relative_to(os.path.abspath(root))
    except (ValueError, OSError, RuntimeError):
        return None


def describe_file(file_path: Path, root: Path) -> FileDescriptor:
    p = Path(file_path)
    return FileDescriptor(
        path=p,
        source_path=str(p.resolve()),
        source_file=p.stem,
        batch_id=infer_batch_id(p, root),
    )


# --------------
# Record loader
# --------------

def sniff_delimiter(file_path: Path) -> str:
    with open(file_path, "r", encoding=INPUT_ENCODING, newline="") as fh:
        sample = fh.read(SNIFF_SAMPLE_BYTES)
    # header line only
    header = sample.splitlines()[0] if sample else ""
    try:
        return csv.Sniffer().sniff(header, delimiters=SNIFF_DELIMITERS).delimiter
    except csv.Error:
        return DEFAULT_DELIMITER


def read_batch_table(file_path: Path) -> pd.DataFrame:
    """
    Parse one delimited file with a header row. Raises FileReadError on any failure.
    """
    try:
        sep = sniff_delimiter(file_path)
        # nullable dtypes keep integer columns integral through the NA-filling merge
        return pd.read_csv(file_path, sep=sep, encoding=INPUT_ENCODING, dtype_backend="numpy_nullable")
    except Exception as e:
        raise FileReadError(Path(file_path), str(e)) from e


def load_file(descriptor: FileDescriptor, logger: logging.Logger) -> LoadResult:
    try:
        df = read_batch_table(descriptor.path)
    except FileReadError as e:
        logger.warning(f"FAILED reading: {descriptor.path} | {e.reason}")
        rep = FileReport(
            source_path=descriptor.source_path,
            source_file=descriptor.source_file,
            batch_id=descriptor.batch_id,
            rows_read=None,
            status=STATUS_READ_FAIL,
        )
        return LoadResult(descriptor=descriptor, table=None, report=rep, error=e.reason)

    tagged = tag_provenance(df, descriptor, logger)
    logger.info(f"{descriptor.source_path}: batch_id={descriptor.batch_id} rows={len(tagged)} cols={df.shape[1]}")
    rep = FileReport(
        source_path=descriptor.source_path,
        source_file=descriptor.source_file,
        batch_id=descriptor.batch_id,
        rows_read=int(len(tagged)),
        status=STATUS_OK,
    )
    return LoadResult(descriptor=descriptor, table=tagged, report=rep)


def load_all(
    descriptors: Sequence[FileDescriptor],
    logger: logging.Logger,
    workers: int = 1,
) -> List[LoadResult]:
    """
    Load every file; results come back in discovery order regardless of workers.
    """
    if workers <= 1 or len(descriptors) <= 1:
        results = [load_file(d, logger) for d in descriptors]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda d: load_file(d, logger), descriptors))

    if not any(r.ok for r in results):
        raise AllReadsFailedError("All CSV reads failed. Nothing to merge.")
    return results


# -----------------
# Provenance tagger
# -----------------

def tag_provenance(df: pd.DataFrame, descriptor: FileDescriptor, logger: logging.Logger) -> pd.DataFrame:
    """
    Return a copy of df with source_file / source_path / batch_id set on every row.
    Pre-existing columns with these names are overwritten in place.
    """
    out = df.copy()
    values = {
        SOURCE_FILE_COL: descriptor.source_file,
        SOURCE_PATH_COL: descriptor.source_path,
        BATCH_ID_COL: descriptor.batch_id,
    }
    for col, val in values.items():
        if col in out.columns:
            logger.debug(f"{descriptor.source_path}: provenance overwrites existing column '{col}'")
        out[col] = val
    return out


# -----------------------------
# Column-harmonizing merger
# -----------------------------

def merge_tables(tables: Sequence[pd.DataFrame]) -> pd.DataFrame:
    """
    Union of rows over the union of columns (first-seen order), NA-filled.
    """
    tables = list(tables)
    if not tables:
        return pd.DataFrame()
    return pd.concat(tables, ignore_index=True, sort=False)


# ---------------
# Quality filter
# ---------------

def is_na_scalar(v: Any) -> bool:
    if v is None:
        return True
    if is_scalar(v):
        return bool(pd.isna(v))
    return False


def _trimmed_text(s: pd.Series) -> pd.Series:
    return s.astype(object).map(lambda v: None if is_na_scalar(v) else str(v).strip())


def coerce_peaks(s: pd.Series) -> pd.Series:
    """
    Peak counts as numbers; anything that does not parse after trimming becomes NaN.
    """
    return pd.to_numeric(_trimmed_text(s), errors="coerce")


def normalize_well(s: pd.Series) -> pd.Series:
    return _trimmed_text(s).astype("string").str.upper()


def peaks_predicate(min_peaks: float) -> Callable[[pd.Series], pd.Series]:
    def _keep(s: pd.Series) -> pd.Series:
        num = coerce_peaks(s)
        return (num.notna() & (num >= min_peaks)).astype(bool)
    return _keep


def well_predicate(s: pd.Series) -> pd.Series:
    wells = normalize_well(s)
    return wells.str.fullmatch(WELL_REGEX.pattern).fillna(False).astype(bool)


def default_filter_stages(
    peaks_column: str = PEAKS_COLUMN,
    well_column: str = WELL_COLUMN,
    min_peaks: float = MIN_PEAKS,
) -> List[FilterStage]:
    return [
        FilterStage(name="peaks", column=peaks_column, predicate=peaks_predicate(min_peaks)),
        FilterStage(name="well", column=well_column, predicate=well_predicate, normalize=normalize_well),
    ]


def apply_quality_filters(
    df: pd.DataFrame,
    stages: Sequence[FilterStage],
    logger: logging.Logger,
) -> Tuple[pd.DataFrame, List[StageResult]]:
    """
    Apply the stages in order. All required columns are checked up front so a
    missing column never leaves a partially filtered table behind.
    """
    for st in stages:
        if st.column not in df.columns:
            raise RequiredColumnMissingError(st.column)

    out = df
    results: List[StageResult] = []
    for st in stages:
        rows_in = len(out)
        keep = st.predicate(out[st.column])
        out = out.loc[keep.to_numpy()].copy()
        if st.normalize is not None:
            out[st.column] = st.normalize(out[st.column])
        removed = rows_in - len(out)
        results.append(StageResult(name=st.name, column=st.column, rows_in=rows_in, rows_removed=removed))
        logger.info(f"Filter '{st.name}' ({st.column}): removed {removed} of {rows_in} rows")

    return out.reset_index(drop=True), results


# -------------------
# Integrity checks
# -------------------

def find_duplicate_wells(df: pd.DataFrame, well_column: str = WELL_COLUMN) -> pd.DataFrame:
    """
    Rows sharing (batch_id, source_path, well) with at least one other row.
    Report-only: nothing is removed.
    """
    keys = [BATCH_ID_COL, SOURCE_PATH_COL, well_column]
    if df.empty or any(k not in df.columns for k in keys):
        return df.iloc[0:0].copy()
    mask = df.duplicated(subset=keys, keep=False) & df[well_column].notna()
    return df.loc[mask].sort_values(by=keys, kind="stable").copy()


def missing_metadata_report(df: pd.DataFrame, columns: Sequence[str]) -> Dict[str, Optional[int]]:
    """
    Null count per metadata column; None when the column is absent altogether.
    """
    out: Dict[str, Optional[int]] = {}
    for c in columns:
        out[c] = int(df[c].isna().sum()) if c in df.columns else None
    return out


# --------------------------------
# Reconciliation & report builder
# --------------------------------

def build_report(results: Sequence[LoadResult]) -> pd.DataFrame:
    rep = pd.DataFrame([asdict(r.report) for r in results], columns=REPORT_KEY + ["rows_read", "status"])
    rep["rows_read"] = rep["rows_read"].astype("Int64")
    return rep


def reconcile_report(report: pd.DataFrame, filtered: pd.DataFrame) -> pd.DataFrame:
    """
    Recompute rows kept per source file after filtering and derive rows removed.
    READ_FAIL rows keep null counts.
    """
    if filtered.empty or any(k not in filtered.columns for k in REPORT_KEY):
        kept = pd.DataFrame(columns=REPORT_KEY + ["rows_kept"])
    else:
        kept = filtered.groupby(REPORT_KEY, sort=False).size().reset_index(name="rows_kept")

    # Key columns share object dtype so the join never misses on dtype alone
    kept = kept.astype({k: object for k in REPORT_KEY})
    base = report.astype({k: object for k in REPORT_KEY})

    out = base.merge(kept, on=REPORT_KEY, how="left", sort=False)

    ok = out["status"] == STATUS_OK
    rows_kept = pd.to_numeric(out["rows_kept"], errors="coerce").astype("Int64")
    rows_kept = rows_kept.where(~ok, rows_kept.fillna(0))
    rows_kept = rows_kept.where(ok, pd.NA)
    out["rows_kept"] = rows_kept.astype("Int64")
    out["rows_removed"] = (out["rows_read"].astype("Int64") - out["rows_kept"]).astype("Int64")

    return out[REPORT_COLUMNS]


# ---------
# Writers
# ---------

def write_csv(df: pd.DataFrame, path: Path, logger: logging.Logger, label: str) -> Path:
    df.to_csv(path, index=False, encoding=OUTPUT_ENCODING)
    logger.info(f"Saved {label}: {Path(path).resolve()} rows={len(df)}")
    return Path(path)


def log_filter_summary(summary: RunSummary, stages: Sequence[StageResult], logger: logging.Logger) -> None:
    logger.info("---- FILTER SUMMARY ----")
    logger.info(f"Rows raw merged:     {summary.rows_raw}")
    for st in stages:
        logger.info(f"Removed ({st.column}): {st.rows_removed}")
    logger.info(f"Removed (total):     {summary.rows_removed_total}")
    logger.info(f"Rows final:          {summary.rows_final}")


# ---------
# Pipeline
# ---------

def run_pipeline(cfg: MergeConfig, logger: logging.Logger) -> Tuple[pd.DataFrame, pd.DataFrame, RunSummary]:
    """
    Discover -> load/tag -> merge -> filter -> reconcile, writing outputs as it goes.

    Returns (filtered table, final per-file report, run summary). Fatal
    conditions raise MergePipelineError subclasses; merged_raw.csv is already
    on disk when a filter column turns out to be missing.
    """
    input_root = Path(cfg.input_root)
    output_root = Path(cfg.output_root)
    summary = RunSummary()

    output_names = [RAW_OUTPUT_NAME, cfg.filtered_name, REPORT_OUTPUT_NAME, DUPLICATES_OUTPUT_NAME]
    files = discover_input_files(input_root, exclude=output_root, output_names=output_names, logger=logger)
    summary.files_found = len(files)
    logger.info(f"Found {len(files)} CSV file(s) under {input_root.resolve()}")

    descriptors = [describe_file(f, input_root) for f in files]
    results = load_all(descriptors, logger, workers=cfg.workers)

    summary.files_ok = sum(1 for r in results if r.ok)
    summary.files_failed = len(results) - summary.files_ok
    if summary.files_failed:
        logger.warning(f"{summary.files_failed} of {len(results)} file(s) failed to read")

    report = build_report(results)
    merged_raw = merge_tables([r.table for r in results if r.ok])
    summary.rows_raw = int(len(merged_raw))
    summary.columns_raw = int(merged_raw.shape[1])
    logger.info(f"Merged {summary.files_ok} file(s): rows={summary.rows_raw} cols={summary.columns_raw}")

    output_root.mkdir(parents=True, exist_ok=True)
    raw_out = write_csv(merged_raw, output_root / RAW_OUTPUT_NAME, logger, "raw merge")
    summary.outputs["merged_raw"] = str(raw_out)

    summary.missing_metadata = missing_metadata_report(merged_raw, cfg.metadata_columns)
    for col, n_missing in summary.missing_metadata.items():
        if n_missing is None:
            logger.warning(f"Metadata column '{col}' not present in merged data")
        elif n_missing:
            logger.warning(f"Metadata column '{col}': {n_missing} row(s) missing a value")

    stages = default_filter_stages(cfg.peaks_column, cfg.well_column, cfg.min_peaks)
    filtered, stage_results = apply_quality_filters(merged_raw, stages, logger)
    summary.removed_by_stage = {st.name: st.rows_removed for st in stage_results}
    summary.rows_removed_total = sum(st.rows_removed for st in stage_results)
    summary.rows_final = int(len(filtered))

    filtered_out = write_csv(filtered, output_root / cfg.filtered_name, logger, "filtered merge")
    summary.outputs["merged_filtered"] = str(filtered_out)

    dups = find_duplicate_wells(filtered, cfg.well_column)
    summary.duplicate_well_rows = int(len(dups))
    if not dups.empty:
        logger.warning(f"Duplicate wells detected: {len(dups)} row(s) share (batch_id, source_path, {cfg.well_column})")
        dup_out = write_csv(dups, output_root / DUPLICATES_OUTPUT_NAME, logger, "duplicate wells")
        summary.outputs["duplicate_wells"] = str(dup_out)

    final_report = reconcile_report(report, filtered)
    report_out = write_csv(final_report, output_root / REPORT_OUTPUT_NAME, logger, "merge report")
    summary.outputs["file_merge_report"] = str(report_out)

    log_filter_summary(summary, stage_results, logger)

    summary_path = output_root / SUMMARY_OUTPUT_NAME
    summary.outputs["merge_summary"] = str(summary_path)
    summary_path.write_text(json.dumps(asdict(summary), ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info(f"Saved run summary: {summary_path.resolve()}")

    return filtered, final_report, summary


# -----
# Main
# -----

def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Merge batch-level CSV tables into one filtered multi-batch dataset.")
    parser.add_argument("--input", required=True, help="Input folder (contains CSVs or batch subfolders)")
    parser.add_argument("--output", required=True, help="Output folder (recommended: empty folder)")
    parser.add_argument("--peaks-column", default=PEAKS_COLUMN, help=f"Peak-count column (default: {PEAKS_COLUMN})")
    parser.add_argument("--well-column", default=WELL_COLUMN, help=f"Well identifier column (default: {WELL_COLUMN})")
    parser.add_argument("--min-peaks", type=float, default=MIN_PEAKS, help=f"Minimum number of peaks to keep a row (default: {MIN_PEAKS})")
    parser.add_argument("--filtered-name", default=FILTERED_OUTPUT_NAME, help=f"File name of the filtered output (default: {FILTERED_OUTPUT_NAME})")
    parser.add_argument("--workers", type=int, default=1, help="Number of concurrent file reads (default: 1)")
    parser.add_argument("--log-dir", default="logs", help="Folder for the log file (default: logs)")
    parser.add_argument("--debug", action="store_true", help="Enable DEBUG logging")
    parser.add_argument("--quiet", action="store_true", help="Console shows warnings and errors only (the log file is unaffected)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    file_level = logging.DEBUG if args.debug else logging.INFO
    console_level = logging.WARNING if args.quiet else file_level
    logger = setup_logging(Path(args.log_dir), console_level=console_level, file_level=file_level)

    cfg = MergeConfig(
        input_root=Path(args.input),
        output_root=Path(args.output),
        peaks_column=args.peaks_column,
        well_column=args.well_column,
        min_peaks=args.min_peaks,
        filtered_name=args.filtered_name,
        workers=max(1, args.workers),
    )

    try:
        run_pipeline(cfg, logger)
    except MergePipelineError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 2

    logger.info("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())

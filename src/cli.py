"""Command-line interface for customs document extraction.

Provides subcommands for processing folders of scans into CSV, single
scans or text files into JSON, and listing supported document types.
"""

import argparse
import csv
import json
import sys
import time
from pathlib import Path

from src.documents.registry import EXTRACTORS
from src.documents.types import DocumentType
from src.ocr.document_processor import DocumentProcessingError, DocumentProcessor
from src.utils.config import load_config
from src.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png",)
_META_COLUMNS = [
    "filename",
    "status",
    "valid",
    "confidence",
    "extraction_method",
    "file_hash",
    "comments",
    "error",
]
_DOCUMENT_TYPES = [t.value for t in DocumentType]


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported scans in a directory.

    Args:
        input_dir: Directory to scan for documents.

    Returns:
        Sorted list of document file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def _record_row(record_dict: dict[str, object]) -> dict[str, object]:
    row = {k: v for k, v in record_dict.items() if k not in ("raw_text", "file_name")}
    row["filename"] = record_dict.get("file_name")
    row["status"] = "success"
    row["error"] = None
    return row


def process_folder(
    input_dir: Path,
    output_csv: Path,
    document_type: str = DocumentType.CARNET_ADUANERO,
    verbose: bool = False,
    processor: DocumentProcessor | None = None,
) -> dict[str, int]:
    """Process all scans in a folder and export results to CSV.

    Every input gets one row, in file name order. A failing file is
    written with status ``failed`` and does not stop the batch.

    Args:
        input_dir: Directory containing PNG scans.
        output_csv: Path for the output CSV file.
        document_type: Which rule table to apply.
        verbose: Whether to print per-file results.
        processor: Pipeline to use. Built from the config when omitted.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    if processor is None:
        processor = DocumentProcessor(load_config())

    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    max_files = processor.config.extraction.max_batch_files
    if len(files) > max_files:
        logger.warning(
            "Batch of %d files exceeds the configured limit of %d",
            len(files),
            max_files,
        )
    logger.info("Found %d documents to process", len(files))

    start_time = time.time()
    batch = processor.process_batch(files, document_type, [f.name for f in files])
    logger.info("Processed %d documents in %.2fs", len(files), time.time() - start_time)

    rows: dict[str, dict[str, object]] = {}
    for record in batch.records:
        row = _record_row(record.to_dict())
        rows[str(row["filename"])] = row
    for error in batch.errors:
        rows[error.filename] = {
            "filename": error.filename,
            "status": "failed",
            "error": error.message,
        }

    results = [rows[f.name] for f in files]
    if verbose:
        for i, row in enumerate(results, 1):
            print(f"[{i}/{len(results)}] {row['filename']}: {row['status']}")

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {
        "total": len(files),
        "successful": len(batch.records),
        "failed": len(batch.errors),
    }
    _print_summary(summary, output_csv)
    return summary


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write extraction results to a CSV file.

    Args:
        results: List of result dictionaries.
        output_path: Path for the output CSV file.
    """
    if not results:
        return

    all_keys: set[str] = set()
    for r in results:
        all_keys.update(r.keys())

    field_columns = sorted(all_keys - set(_META_COLUMNS))
    columns = [c for c in _META_COLUMNS if c in all_keys] + field_columns

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    """Print batch processing summary to stdout.

    Args:
        summary: Counts of total, successful, and failed documents.
        output_csv: Path to the output CSV.
    """
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def extract_single(
    file_paths: list[Path],
    document_type: str = DocumentType.CARNET_ADUANERO,
    processor: DocumentProcessor | None = None,
) -> dict[str, object]:
    """Process the pages of one document and return the merged record.

    Args:
        file_paths: PNG scans of the document, in page order.
        document_type: Which rule table to apply.
        processor: Pipeline to use. Built from the config when omitted.

    Returns:
        The record as a JSON-serializable dictionary.
    """
    if processor is None:
        processor = DocumentProcessor(load_config())
    record = processor.process_many(
        file_paths, document_type, [p.name for p in file_paths]
    )
    return record.to_dict()


def extract_text(
    text: str,
    document_type: str = DocumentType.CARNET_ADUANERO,
    processor: DocumentProcessor | None = None,
) -> dict[str, object]:
    """Extract a record from already OCR'd text."""
    if processor is None:
        processor = DocumentProcessor(load_config())
    return processor.process_text(text, document_type).to_dict()


def _emit_json(result: dict[str, object], output: Path | None) -> None:
    output_str = json.dumps(result, indent=2, ensure_ascii=False)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(output_str, encoding="utf-8")
        print(f"Output written to {output}")
    else:
        print(output_str)


def _add_type_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-t",
        "--type",
        choices=_DOCUMENT_TYPES,
        default=DocumentType.CARNET_ADUANERO.value,
        dest="doc_type",
        help="Document type (default: carnet_aduanero)",
    )


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Customs Document OCR Processor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", type=Path, help="YAML configuration file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of scans")
    batch_parser.add_argument("input_dir", type=Path, help="Input directory with scans")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    _add_type_argument(batch_parser)
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    single_parser = subparsers.add_parser(
        "extract", help="Process the scanned pages of one document"
    )
    single_parser.add_argument("files", type=Path, nargs="+", help="PNG pages to process")
    _add_type_argument(single_parser)
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    text_parser = subparsers.add_parser("text", help="Extract fields from OCR text")
    text_parser.add_argument("file", type=Path, help="Text file, or - for stdin")
    _add_type_argument(text_parser)
    text_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    subparsers.add_parser("types", help="List supported document types")

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(
            args.input_dir,
            args.output,
            args.doc_type,
            args.verbose,
            DocumentProcessor(config),
        )
    elif args.command == "extract":
        missing = [p for p in args.files if not p.exists()]
        if missing:
            print(f"Error: {missing[0]} does not exist", file=sys.stderr)
            sys.exit(1)
        try:
            result = extract_single(args.files, args.doc_type, DocumentProcessor(config))
        except DocumentProcessingError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
        _emit_json(result, args.output)
    elif args.command == "text":
        if str(args.file) == "-":
            text = sys.stdin.read()
        elif args.file.exists():
            text = args.file.read_text(encoding="utf-8")
        else:
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        _emit_json(extract_text(text, args.doc_type, DocumentProcessor(config)), args.output)
    elif args.command == "types":
        for doc_type, extractor_cls in EXTRACTORS.items():
            print(f"{doc_type.value:<26} {extractor_cls.display_name}")
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()

#!/usr/bin/env python
"""
Command-line interface for the Manuscript Reconstruction Pipeline.

Usage:
    manuscript-recon --input <manuscript> --output <output_dir> [options]

Examples:
    # Lay out a DOCX manuscript as PDF and DOCX
    manuscript-recon --input paper.docx --output ./output --format pdf docx

    # No AI: title from the first line, body as one section
    manuscript-recon --input paper.pdf --output ./output --manual

    # Pasted text, with a Letter of Acceptance
    manuscript-recon --text-file pasted.txt --output ./output --format all --loa
"""

import sys
from pathlib import Path

# Add project root to path for imports when running as script
_root_dir = Path(__file__).resolve().parent.parent
if str(_root_dir) not in sys.path:
    sys.path.insert(0, str(_root_dir))

import argparse
import asyncio
import logging
import time

from manuscript_recon.config import RecoveryPolicy, get_config
from manuscript_recon.utils.errors import ExtractionFailedError, ExtractorError

logger = logging.getLogger("manuscript_recon")

NOISY_LOGGERS = ("weasyprint", "fontTools", "PIL")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        description="Manuscript Reconstruction Pipeline - Lay out manuscripts in journal style",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Lay out a DOCX manuscript in every format:
    manuscript-recon --input paper.docx --output ./output --format all

  Try a specific model list with three attempts each:
    manuscript-recon --input paper.pdf --output ./output --model gemini-2.5-flash --max-attempts 3

  Manual mode (no AI):
    manuscript-recon --input paper.pdf --output ./output --manual
        """
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--input", "-i",
        help="Manuscript file (DOCX, PDF, HTML, TXT or MD)"
    )
    source.add_argument(
        "--text-file",
        help="Plain-text file treated as pasted manuscript text"
    )

    parser.add_argument(
        "--output", "-o",
        required=True,
        help="Output directory for generated files"
    )

    parser.add_argument(
        "--format", "-f",
        nargs="+",
        default=["json", "docx"],
        choices=["json", "html", "pdf", "docx", "all"],
        help="Output format(s) (default: json docx)"
    )

    parser.add_argument(
        "--manual",
        action="store_true",
        help="Skip the AI backend and build a minimal manuscript from the text"
    )

    parser.add_argument(
        "--model",
        nargs="+",
        default=None,
        help="Candidate models, tried in order (default: gemini-2.5-flash gemini-2.5-pro)"
    )

    parser.add_argument(
        "--max-attempts",
        type=int,
        default=None,
        help="Attempts per model before falling back to the next (default: 2)"
    )

    parser.add_argument(
        "--strict-recovery",
        action="store_true",
        help="Reject responses missing title or sections instead of backfilling placeholders"
    )

    parser.add_argument(
        "--article-type",
        default=None,
        help="Article type hint, e.g. 'Review Article'"
    )

    parser.add_argument(
        "--loa",
        action="store_true",
        help="Also generate a Letter of Acceptance"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0"
    )

    return parser


def build_config(args):
    """Pipeline configuration with command-line overrides applied."""
    config = get_config()
    if args.model:
        config.extraction.candidate_models = list(args.model)
    if args.max_attempts is not None:
        if args.max_attempts < 1:
            raise ValueError("--max-attempts must be at least 1")
        config.extraction.max_attempts_per_model = args.max_attempts
    if args.strict_recovery:
        config.extraction.recovery_policy = RecoveryPolicy.STRICT
    return config


def print_summary(result, outputs, elapsed: float):
    """Print the QC summary."""
    report = result.report
    print("\n" + "=" * 60)
    print("MANUSCRIPT LAYOUT COMPLETE")
    print("=" * 60)
    if result.source_file:
        print(f"Source: {result.source_file}")
    print(f"Title: {result.document.title}")
    print(f"Mode: {result.mode}" + (f" ({result.model})" if result.model else ""))
    if result.recovered:
        print("Note: response was repaired or backfilled with placeholders")
    print(f"Processing time: {elapsed:.2f}s")
    print()
    print("Integrity:")
    print(f"  Status: {report.status.value.upper()} - {report.summary}")
    print(f"  Word coverage: {report.coverage_percent}%")
    print(f"  Words: {report.generated_word_count} generated / {report.original_word_count} original")
    if report.missing_sections:
        print(f"  Missing sections: {', '.join(report.missing_sections)}")
    for issue in report.formatting_issues:
        print(f"  Issue: {issue}")
    print()
    print("Outputs:")
    for fmt, path in outputs.items():
        print(f"  {fmt}: {path}")
    print("=" * 60)


def run_pipeline(args) -> int:
    """Run the manuscript pipeline."""
    from manuscript_recon.utils.assembler import ManuscriptAssembler
    from manuscript_recon.utils.export import DocumentExporter
    from manuscript_recon.utils.io import ensure_dir, extract_plain_text
    from manuscript_recon.utils.letter import LetterOfAcceptance

    start_time = time.time()

    config = build_config(args)
    output_dir = ensure_dir(args.output)
    assembler = ManuscriptAssembler(config)

    try:
        if args.text_file:
            text_path = Path(args.text_file)
            if not text_path.is_file():
                raise ExtractorError(str(text_path), "File not found")
            text = extract_plain_text(text_path).text
            if args.manual:
                result = assembler.process_manual(text)
            else:
                result = asyncio.run(assembler.process_text(text, article_type=args.article_type))
            result.source_file = str(text_path)
            base_name = text_path.stem
        else:
            result = asyncio.run(
                assembler.process_file(args.input, manual=args.manual, article_type=args.article_type)
            )
            base_name = Path(args.input).stem
    except ExtractorError as e:
        logger.error(f"Could not read manuscript: {e}")
        return 1
    except ExtractionFailedError as e:
        logger.error(f"AI processing failed: {e.last_error or 'no usable response'}")
        print(f"\n{e.guidance}", file=sys.stderr)
        return 1

    exporter = DocumentExporter(
        output_dir,
        base_name,
        journal=config.journal,
        config=config.export,
        layout_config=config.layout,
    )
    outputs = exporter.export(result.document, args.format, report=result.report)

    if args.loa:
        letter = LetterOfAcceptance.from_manuscript(result.document, config.journal)
        formats = ["html", "pdf", "docx"] if "all" in args.format else args.format
        if "html" in formats:
            path = output_dir / f"{base_name}_LoA.html"
            path.write_text(letter.to_html(config.export), encoding="utf-8")
            outputs["loa_html"] = path
        if "pdf" in formats:
            outputs["loa_pdf"] = letter.export_pdf(output_dir / f"{base_name}_LoA.pdf", config.export)
        if "docx" in formats or not {"html", "pdf"} & set(formats):
            outputs["loa_docx"] = letter.export_docx(output_dir / f"{base_name}_LoA.docx", config.export)

    if not args.quiet:
        print_summary(result, outputs, time.time() - start_time)

    return 0


def main():
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.ERROR)

    try:
        exit_code = run_pipeline(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.verbose:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
Command Line Interface for cascade OCR
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import numpy as np
import pypdfium2 as pdfium
from PIL import Image

from .client import OCRClient
from .errors import CascadeOCRError
from .models import MODEL_VERSION, ModelCacheStore
from .modules.reading_order import DIRECTIONS
from .pipeline import OCRPipeline
from .settings import Settings

PDF_RENDER_SCALE = 2.0


def load_pages(path: Path, max_pages: Optional[int] = None) -> Iterator[Tuple[str, np.ndarray]]:
    """Yield (name, RGB array) for each page of an image or PDF file."""
    if path.suffix.lower() == ".pdf":
        pdf = pdfium.PdfDocument(str(path))
        try:
            total = len(pdf)
            count = min(max_pages, total) if max_pages is not None else total
            for i in range(count):
                page = pdf[i]
                pil_image = page.render(scale=PDF_RENDER_SCALE).to_pil()
                page.close()
                yield f"{path.name}#{i + 1}", np.asarray(pil_image.convert("RGB"))
        finally:
            pdf.close()
    else:
        with Image.open(path) as img:
            yield path.name, np.asarray(img.convert("RGB"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cascade-ocr",
        description="Recognize text lines in page images and PDFs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # OCR a scanned page and print the text
  cascade-ocr page.png

  # OCR a PDF, writing <name>.txt into out/
  cascade-ocr book.pdf -o out/ --max-pages 5

  # Horizontal documents, recognition in-process
  cascade-ocr memo.jpg --direction horizontal_ltr --workers 0

  # Inspect or clear the model cache
  cascade-ocr --cache-status
  cascade-ocr --clear-cache
        """
    )

    # Input/Output
    parser.add_argument(
        'inputs',
        nargs='*',
        metavar='INPUT',
        help='Image or PDF files to process'
    )
    parser.add_argument(
        '-o', '--output',
        type=str,
        default=None,
        help='Output directory for <input>.txt files (default: print to stdout)'
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Write per-page results with line boxes as JSON instead of plain text'
    )

    # Processing options
    parser.add_argument(
        '--workers',
        type=int,
        default=None,
        help='Recognition workers, 0 = in-process (default: CPU count clamped to 2..8)'
    )
    parser.add_argument(
        '--direction',
        type=str,
        default=None,
        choices=list(DIRECTIONS),
        help='Reading direction (default: vertical_rl)'
    )
    parser.add_argument(
        '--max-pages',
        type=int,
        default=None,
        help='Maximum number of pages to process per PDF (default: all pages)'
    )

    # Model options
    parser.add_argument(
        '--cache-dir',
        type=str,
        default=None,
        help='Model cache directory'
    )
    parser.add_argument(
        '--base-url',
        type=str,
        default=None,
        help='Base URL or local directory that model paths are resolved against'
    )
    parser.add_argument(
        '--clear-cache',
        action='store_true',
        help='Remove all cached models and exit'
    )
    parser.add_argument(
        '--cache-status',
        action='store_true',
        help='Show cached models and exit'
    )

    # Verbosity
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = Settings.from_env(
        cache_dir=Path(args.cache_dir) if args.cache_dir else None,
        base_url=args.base_url,
        workers=args.workers,
        direction=args.direction,
        show_download_progress=True,
    )

    if args.clear_cache or args.cache_status:
        store = ModelCacheStore(settings.cache_dir, MODEL_VERSION)
        if args.clear_cache:
            store.clear()
            print(f"Cleared model cache: {store.cache_dir}")
        if args.cache_status:
            print(store.status())
        return 0

    if not args.inputs:
        parser.print_usage(sys.stderr)
        print("Error: at least one INPUT is required", file=sys.stderr)
        return 2

    input_paths = [Path(p) for p in args.inputs]
    for input_path in input_paths:
        if not input_path.exists():
            print(f"Error: Input file '{input_path}' not found", file=sys.stderr)
            return 1

    output_dir = Path(args.output) if args.output else None
    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)

    if args.verbose:
        print("=" * 70)
        print("Cascade OCR CLI")
        print("=" * 70)
        print(f"Inputs:    {', '.join(str(p) for p in input_paths)}")
        print(f"Output:    {output_dir or 'stdout'}")
        print(f"Direction: {settings.direction}")
        print(f"Workers:   {settings.worker_count}")
        print(f"Cache:     {settings.cache_dir}")
        print("=" * 70)
        print()

    failures = 0
    try:
        with OCRClient(OCRPipeline(settings)) as client:
            if args.verbose:
                print("Loading models...")
            client.start()

            for input_path in input_paths:
                pages = list(load_pages(input_path, args.max_pages))
                if args.verbose:
                    print(f"Processing {input_path.name}: {len(pages)} page(s)")

                outcomes = client.process_batch(pages)
                texts = []
                for outcome in outcomes:
                    if outcome.ok:
                        texts.append(outcome.result.full_text)
                        if args.verbose:
                            print(f"  {outcome.source_name}: {len(outcome.result.blocks)} lines "
                                  f"in {outcome.result.elapsed_ms} ms")
                    else:
                        failures += 1
                        print(f"Error: {outcome.source_name}: {outcome.error}", file=sys.stderr)
                if args.json:
                    text = json.dumps(
                        [o.result.to_dict() for o in outcomes if o.ok], ensure_ascii=False, indent=2
                    )
                else:
                    text = "\n\n".join(texts)

                if output_dir is None:
                    print(text)
                else:
                    output_path = output_dir / f"{input_path.stem}{'.json' if args.json else '.txt'}"
                    output_path.write_text(text, encoding='utf-8')
                    print(f"Saved to: {output_path}")

        return 1 if failures else 0

    except KeyboardInterrupt:
        print("\n\nInterrupted by user", file=sys.stderr)
        return 130
    except (CascadeOCRError, OSError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())

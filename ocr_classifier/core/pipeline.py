"""Classifier pipeline orchestrator.

Wires configuration, logging, the OCR engine and the rotation search
together, and adds file and batch processing on top of detect_text.
"""

import json
import sys
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from ..errors import ClassifierError, ImageDecodeError
from ..models import ClassifierResult
from ..ocr import OCREngine, create_engine
from ..preprocessing import Preprocessor
from ..scoring import ConfidenceAggregator
from ..utils import decode_image, load_config, setup_logging, truncate_text
from .search import RotationSearchEngine, SearchSettings

IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png')


@dataclass
class FileResult:
    """Classification outcome for one image file."""
    file: str
    width: int = 0
    height: int = 0
    result: Optional[ClassifierResult] = None
    error: Optional[str] = None
    processing_time: float = 0.0

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        return {
            'file': self.file,
            'width': self.width,
            'height': self.height,
            'result': self.result.to_dict() if self.result else None,
            'error': self.error,
            'processing_time': self.processing_time
        }


class ClassifierPipeline:
    """Main entry point for text detection."""

    def __init__(self,
                 config_path: Optional[Union[str, Path]] = None,
                 config: Optional[Dict] = None,
                 ocr_engine: Optional[OCREngine] = None):
        """Initialize classifier pipeline.

        Args:
            config_path: Path to configuration file (packaged default if omitted)
            config: Configuration dictionary, used instead of config_path
            ocr_engine: Engine override; built from the 'ocr' section if omitted
        """
        self.config = config if config is not None else load_config(config_path)

        self.logger = setup_logging(self.config.get('logging', {}))
        self.logger.info("Initializing classifier pipeline")

        preprocessing_config = self.config.get('preprocessing', {})
        self.ocr_engine = ocr_engine or create_engine(self.config.get('ocr', {}))
        self.settings = SearchSettings.from_config(self.config.get('search', {}))
        self.search_engine = RotationSearchEngine(
            self.ocr_engine,
            settings=self.settings,
            preprocessor=Preprocessor(preprocessing_config),
            aggregator=ConfidenceAggregator(),
            encode_format=preprocessing_config.get('encode_format', 'png'),
            jpeg_quality=preprocessing_config.get('jpeg_quality', 95)
        )

        self.logger.info(
            f"Classifier pipeline initialized (engine: {self.ocr_engine.name}, "
            f"workers: {self.settings.worker_count}, threshold: {self.settings.acceptance_threshold})"
        )

    def classify(self, image_bytes: bytes) -> ClassifierResult:
        """Detect text in encoded image bytes."""
        return self.search_engine.detect_text(image_bytes)

    def classify_file(self, image_path: Union[str, Path]) -> FileResult:
        """Classify a single image file.

        Errors are recorded on the returned FileResult rather than raised.

        Args:
            image_path: Path to image file

        Returns:
            FileResult object
        """
        start_time = time.time()
        image_path = Path(image_path)
        file_result = FileResult(file=str(image_path))

        try:
            image_bytes = image_path.read_bytes()

            try:
                file_result.width, file_result.height = decode_image(image_bytes).size
            except ImageDecodeError:
                self.logger.debug(f"Could not read dimensions of {image_path}")

            file_result.result = self.classify(image_bytes)
        except (OSError, ClassifierError) as e:
            self.logger.error(f"Error processing {image_path}: {e}")
            file_result.error = str(e)

        file_result.processing_time = time.time() - start_time
        return file_result

    def classify_batch(self,
                       image_paths: List[Union[str, Path]],
                       max_workers: Optional[int] = None) -> List[FileResult]:
        """Classify multiple image files in parallel.

        Args:
            image_paths: List of image paths
            max_workers: Maximum number of parallel files (default from config)

        Returns:
            List of FileResult objects sorted by file name
        """
        if max_workers is None:
            max_workers = self.config.get('batch', {}).get('max_workers', 4)

        self.logger.info(f"Processing batch of {len(image_paths)} images with {max_workers} workers")

        results = []
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_path = {
                executor.submit(self.classify_file, path): path
                for path in image_paths
            }

            for future in as_completed(future_to_path):
                results.append(future.result())

        results.sort(key=lambda r: r.file)
        failed = sum(1 for r in results if r.error)
        self.logger.info(f"Batch processing complete: {len(results)} images, {failed} failed")

        return results


def collect_image_paths(paths: Iterable[Union[str, Path]]) -> List[Path]:
    """Expand directories into the image files they contain.

    Args:
        paths: Files and/or directories

    Returns:
        Sorted, de-duplicated list of image files
    """
    found = set()
    for path in map(Path, paths):
        if path.is_dir():
            found.update(
                p for p in path.rglob('*')
                if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS
            )
        else:
            found.add(path)
    return sorted(found)


def format_results_table(results: List[FileResult]) -> str:
    """Render batch results as a fixed-width table."""
    rule = "=" * 110
    lines = [
        rule,
        f"{'File':<30} | {'Dimensions':<12} | {'Scale':<6} | {'Mean':<8} | "
        f"{'Weighted':<8} | {'Tokens':<6} | {'Angle':<5}",
        "-" * 110,
    ]
    for r in results:
        name = truncate_text(r.file, 30)
        if r.error:
            lines.append(f"{name:<30} | ERROR: {r.error}")
            continue
        res = r.result
        dims = f"{r.width}x{r.height}"
        lines.append(
            f"{name:<30} | {dims:<12} | {res.scale_factor:<6.2f} | {res.mean_confidence:<8.4f} | "
            f"{res.weighted_confidence:<8.4f} | {res.token_count:<6d} | {res.angle:<5d}"
        )
    lines.append(rule)
    return "\n".join(lines)


def format_boxes_table(file_result: FileResult) -> str:
    """Render the bounding boxes of one result as a fixed-width table."""
    res = file_result.result
    rule = "=" * 90
    lines = [
        rule,
        f"Bounding Boxes for: {file_result.file}",
        f"Image Dimensions: {file_result.width}x{file_result.height}",
        f"Scale Factor: {res.scale_factor:.2f}",
        f"Mean Confidence: {res.mean_confidence:.4f}",
        f"Weighted Confidence: {res.weighted_confidence:.4f}",
        f"Token Count: {res.token_count}",
        f"Best Rotation Angle: {res.angle}",
        f"Total Boxes Found: {len(res.boxes)}",
        "-" * 90,
        f"{'#':<5} | {'Word':<20} | {'X':<8} | {'Y':<8} | {'Width':<8} | {'Height':<8} | {'Confidence':<10}",
        "-" * 90,
    ]
    for i, box in enumerate(res.boxes, start=1):
        word = truncate_text(box.word.replace("\n", " "), 20)
        lines.append(
            f"{i:<5d} | {word:<20} | {box.x:<8d} | {box.y:<8d} | "
            f"{box.width:<8d} | {box.height:<8d} | {box.confidence:<10.4f}"
        )
    lines.append(rule)
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for command-line usage."""
    import argparse

    parser = argparse.ArgumentParser(description='Detect readable text in images and score the detection')
    parser.add_argument('paths', nargs='+', help='Image files or directories of images')
    parser.add_argument('--config', default=None, help='Path to configuration file')
    parser.add_argument('--workers', type=int, default=None, help='Number of images processed in parallel')
    parser.add_argument('--boxes', action='store_true', help='Print bounding boxes for every image')
    parser.add_argument('--output', help='Output JSON file path')

    args = parser.parse_args(argv)

    image_paths = collect_image_paths(args.paths)
    if not image_paths:
        print("No image files found")
        return 1

    pipeline = ClassifierPipeline(args.config)

    start_time = time.time()
    results = pipeline.classify_batch(image_paths, max_workers=args.workers)
    elapsed = time.time() - start_time

    print(format_results_table(results))
    failed = sum(1 for r in results if r.error)
    print(f"Total files: {len(results)}, Processed: {len(results) - failed}, Errors: {failed}")
    print(f"Processing time: {elapsed:.2f}s")

    if args.boxes:
        for r in results:
            if r.result is not None:
                print()
                print(format_boxes_table(r))

    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            json.dump([r.to_dict() for r in results], f, indent=2, ensure_ascii=False)
        print(f"\nResults saved to {args.output}")

    return 1 if failed else 0


if __name__ == '__main__':
    sys.exit(main())

"""Injection of generated VINs into customs XML templates.

Template filenames start with the number of vehicle positions they hold,
e.g. ``70-POSITIONS-ACME.xml``. Each position has a ``Marks2_of_packages``
element that receives ``CH: <VIN>``, and each vehicle certificate block
(``Attached_documents`` with code 6122 or 6022) receives the VIN as its
document reference.
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import anyio
import structlog

from vingen.config import settings
from vingen.services.batch.batch_service import BatchAllocator, BatchRequest
from vingen.services.exceptions import TemplateFileError, ValidationError

logger = structlog.get_logger(__name__)

_POSITION_COUNT = re.compile(r"^(\d+)-")

# <Marks2_of_packages/>, <Marks2_of_packages></Marks2_of_packages>
# and <Marks2_of_packages><null/></Marks2_of_packages>, with optional whitespace
_MARKS_ELEMENT = re.compile(r"<Marks2_of_packages\s*(?:/>|>\s*(?:<null\s*/>)?\s*</Marks2_of_packages>)")

_ATTACHED_DOCUMENT = re.compile(
    r"<Attached_documents>\s*<Attached_document_code>(6122|6022)</Attached_document_code>\s*"
    r"<Attached_document_name>([^<]*)</Attached_document_name>\s*<Attached_document_from_rule>"
)


def extract_position_count(filename: str) -> int:
    """Read the number of vehicle positions from a template filename."""
    match = _POSITION_COUNT.match(Path(filename).name)
    if not match:
        raise ValidationError(f"Cannot read the number of positions from filename: {filename}")
    return int(match.group(1))


def count_markers(xml: str) -> int:
    """Number of empty ``Marks2_of_packages`` elements that can take a code."""
    return len(_MARKS_ELEMENT.findall(xml))


def validate_template_content(xml: str, expected_positions: int) -> int:
    """Check that the template holds exactly one marker per declared position.

    Returns:
        The marker count

    Raises:
        ValidationError: Not XML, no markers, or a count that differs from
            the filename
    """
    if not xml.lstrip().startswith("<"):
        raise ValidationError("Template is not an XML document")
    markers = count_markers(xml)
    if markers == 0:
        raise ValidationError("Template contains no empty <Marks2_of_packages> element")
    if markers != expected_positions:
        raise ValidationError(
            f"Template has {markers} <Marks2_of_packages> elements but its filename declares {expected_positions}"
        )
    return markers


def inject_codes(xml: str, codes: list[str], marker_prefix: str | None = None) -> str:
    """Fill position markers and certificate references with ``codes`` in order.

    Markers beyond the number of codes are normalized to an empty element.
    """
    prefix = settings.template_marker_prefix if marker_prefix is None else marker_prefix

    marks: Iterator[str] = iter(codes)

    def fill_mark(_match: re.Match[str]) -> str:
        code = next(marks, None)
        if code is None:
            return "<Marks2_of_packages/>"
        return f"<Marks2_of_packages>{prefix}{code}</Marks2_of_packages>"

    updated = _MARKS_ELEMENT.sub(fill_mark, xml)

    references: Iterator[str] = iter(codes)

    def fill_reference(match: re.Match[str]) -> str:
        code = next(references, None)
        if code is None:
            return match.group(0)
        doc_code, name = match.group(1), match.group(2)
        return (
            f"<Attached_documents>\n<Attached_document_code>{doc_code}</Attached_document_code>\n"
            f"<Attached_document_name>{name}</Attached_document_name>\n"
            f"<Attached_document_reference>{code}</Attached_document_reference>\n"
            f"<Attached_document_from_rule>"
        )

    return _ATTACHED_DOCUMENT.sub(fill_reference, updated)


def output_filename(template_name: str, now: datetime | None = None) -> str:
    """Prefix a template filename with a ``YYYYMMDD_HHMMSS`` timestamp."""
    now = now or datetime.now()
    return f"{now:%Y%m%d_%H%M%S}_{Path(template_name).name}"


def export_csv(codes: list[str]) -> str:
    rows = [f"{i},{code}" for i, code in enumerate(codes, start=1)]
    return "\n".join(["index,vin", *rows])


def export_text(codes: list[str]) -> str:
    return "\n".join(codes)


@dataclass
class TemplateProcessingResult:
    """Outcome of filling one template."""

    template: str
    output_path: Path
    prefix: str
    codes: list[str] = field(default_factory=list)
    start_sequence: int | None = None
    end_sequence: int | None = None

    @property
    def vin_count(self) -> int:
        return len(self.codes)


class TemplateInjectionService:
    """Fills a template file with freshly allocated VINs."""

    def __init__(self, allocator: BatchAllocator, output_dir: str | Path | None = None) -> None:
        self.allocator = allocator
        self.output_dir = Path(output_dir or settings.template_output_dir)

    async def process(
        self,
        template_path: str | Path,
        *,
        manufacturer_id: str,
        descriptor: str,
        model_year: int,
        plant_code: str,
    ) -> TemplateProcessingResult:
        """Generate one VIN per template position and write the filled copy.

        Args:
            template_path: Path to the XML template (filename starts with ``NNN-``)
            manufacturer_id: WMI, 3 characters
            descriptor: VDS, 5 characters
            model_year: Model year
            plant_code: Plant code, 1 character

        Returns:
            TemplateProcessingResult with the output path and generated codes
        """
        template_path = Path(template_path)
        positions = extract_position_count(template_path.name)
        request = BatchRequest(
            quantity=positions,
            manufacturer_id=manufacturer_id,
            descriptor=descriptor,
            model_year=model_year,
            plant_code=plant_code,
        )
        # Everything that can be checked is checked before any number is consumed
        self.allocator.validate(request)

        try:
            xml = await anyio.Path(template_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise TemplateFileError(f"Cannot read template {template_path}: {e}") from e
        validate_template_content(xml, positions)

        output_dir = anyio.Path(self.output_dir)
        try:
            await output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TemplateFileError(f"Cannot create output directory {self.output_dir}: {e}") from e

        batch = await self.allocator.generate_batch(request)
        updated = inject_codes(xml, batch.codes)

        output_path = self.output_dir / output_filename(template_path.name)
        try:
            await anyio.Path(output_path).write_text(updated, encoding="utf-8")
        except OSError as e:
            logger.error(
                "Filled template could not be written",
                output=str(output_path),
                vin_count=batch.produced,
                prefix=batch.prefix,
                error=str(e),
            )
            raise TemplateFileError(
                f"Cannot write {output_path}: {e}; {batch.produced} VINs were issued", codes=batch.codes
            ) from e

        logger.info(
            "Template filled with VINs",
            template=template_path.name,
            output=str(output_path),
            vin_count=batch.produced,
            prefix=batch.prefix,
        )
        return TemplateProcessingResult(
            template=template_path.name,
            output_path=output_path,
            prefix=batch.prefix,
            codes=batch.codes,
            start_sequence=batch.start_sequence,
            end_sequence=batch.end_sequence,
        )

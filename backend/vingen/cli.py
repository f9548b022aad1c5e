"""Operator CLI: generate, validate and inspect VINs and sequence counters.

Usage:
    vingen generate -n 5 --year 2028
    vingen validate LZSHCKZS3WS000001
    vingen stats
    vingen reset LZSHCKZSWS --value 100
"""

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

import click

from vingen.config import settings
from vingen.logging import setup_logging
from vingen.services.batch.batch_service import BatchAllocator, BatchRequest
from vingen.services.exceptions import PartialBatchFailure, ServiceError, TemplateFileError
from vingen.services.sequences.base import SequenceStore
from vingen.services.sequences.selector import select_sequence_store
from vingen.services.templates.xml_injection import (
    TemplateInjectionService,
    TemplateProcessingResult,
    export_csv,
    export_text,
)
from vingen.services.vin.validation import validate_code

T = TypeVar("T")


def run_with_store(func: Callable[[SequenceStore], Awaitable[T]]) -> T:
    """Build the process sequence store, run ``func`` with it and close it."""

    async def runner() -> T:
        store = select_sequence_store(settings)
        try:
            return await func(store)
        finally:
            await store.close()

    try:
        return asyncio.run(runner())
    except PartialBatchFailure as e:
        # Issued codes are valid and must reach the operator
        if e.result.codes:
            click.echo(export_text(e.result.codes))
        raise click.ClickException(str(e)) from e
    except TemplateFileError as e:
        if e.codes:
            click.echo(export_text(e.codes))
        raise click.ClickException(str(e)) from e
    except ServiceError as e:
        raise click.ClickException(str(e)) from e


def vin_field_options(func: Callable[..., None]) -> Callable[..., None]:
    """Shared manufacturer/descriptor/year/plant options."""
    options = [
        click.option("--manufacturer-id", "-m", default=settings.default_manufacturer_id, show_default=True),
        click.option("--descriptor", "-d", default=settings.default_descriptor, show_default=True),
        click.option("--year", "-y", "model_year", type=int, default=lambda: datetime.now().year),
        click.option("--plant", "-p", "plant_code", default=settings.default_plant_code, show_default=True),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
def cli() -> None:
    """Unique VIN generator."""
    setup_logging(sys.stderr)


@cli.command()
@click.option("--quantity", "-n", type=int, required=True, help="Number of VINs to generate")
@vin_field_options
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "csv", "json"]),
    default="text",
    show_default=True,
)
def generate(
    quantity: int,
    manufacturer_id: str,
    descriptor: str,
    model_year: int,
    plant_code: str,
    output_format: str,
) -> None:
    """Generate QUANTITY unique VINs."""
    request = BatchRequest(
        quantity=quantity,
        manufacturer_id=manufacturer_id,
        descriptor=descriptor,
        model_year=model_year,
        plant_code=plant_code,
    )
    result = run_with_store(lambda store: BatchAllocator(store).generate_batch(request))

    if output_format == "csv":
        click.echo(export_csv(result.codes))
    elif output_format == "json":
        payload = {
            "codes": result.codes,
            "prefix": result.prefix,
            "startSequence": result.start_sequence,
            "endSequence": result.end_sequence,
            "generatedAt": result.generated_at.isoformat(),
        }
        click.echo(json.dumps(payload, indent=2))
    else:
        click.echo(export_text(result.codes))


@cli.command()
@click.argument("codes", nargs=-1, required=True)
def validate(codes: tuple[str, ...]) -> None:
    """Validate one or more VINs. Exits with 1 if any is invalid."""
    all_valid = True
    for code in codes:
        result = validate_code(code)
        if result.valid:
            click.echo(f"{code}: valid")
        else:
            all_valid = False
            click.echo(f"{code}: invalid ({'; '.join(result.errors)})")
    if not all_valid:
        sys.exit(1)


@cli.command()
def stats() -> None:
    """Show aggregate sequence statistics."""

    async def collect(store: SequenceStore) -> dict[str, object]:
        statistics = await store.statistics()
        return {"backend": store.backend_name, **statistics.to_dict()}

    click.echo(json.dumps(run_with_store(collect), indent=2))


@cli.command()
@click.argument("prefix", required=False)
def show(prefix: str | None) -> None:
    """Show the current sequence for PREFIX, or all prefixes."""
    if prefix is None:
        sequences = run_with_store(lambda store: store.all_sequences())
        for key, value in sequences.items():
            click.echo(f"{key}\t{value}")
        return
    current = run_with_store(lambda store: store.read_current(prefix.upper()))
    click.echo(f"{prefix.upper()}\t{current}")


@cli.command()
@click.argument("prefix")
@click.option("--value", type=click.IntRange(min=0), default=0, show_default=True)
@click.confirmation_option(prompt="Resetting a counter can re-issue VINs already in use. Continue?")
def reset(prefix: str, value: int) -> None:
    """Force the counter for PREFIX to VALUE. Dangerous."""
    run_with_store(lambda store: store.reset(prefix.upper(), value))
    click.echo(f"{prefix.upper()} reset to {value}")


@cli.command()
@click.argument("template", type=click.Path(exists=True, dir_okay=False))
@vin_field_options
@click.option("--output-dir", "-o", default=settings.template_output_dir, show_default=True)
def inject(
    template: str,
    manufacturer_id: str,
    descriptor: str,
    model_year: int,
    plant_code: str,
    output_dir: str,
) -> None:
    """Fill TEMPLATE (named NNN-...xml) with NNN new VINs."""

    async def process(store: SequenceStore) -> TemplateProcessingResult:
        service = TemplateInjectionService(BatchAllocator(store), output_dir)
        return await service.process(
            template,
            manufacturer_id=manufacturer_id,
            descriptor=descriptor,
            model_year=model_year,
            plant_code=plant_code,
        )

    result = run_with_store(process)
    click.echo(f"Wrote {result.vin_count} VINs to {result.output_path}")


if __name__ == "__main__":
    cli()

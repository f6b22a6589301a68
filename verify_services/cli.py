"""
Command-line interface for Verify Services.

Commands:
  - verify : verify metadata + sources against one or more candidate addresses
  - lookup : print the stored match status of a contract
  - chains : list known chains and whether a reader is configured

Usage:
  python -m verify_services.cli verify --chain mainnet --address 0x... metadata.json A.sol
  python -m verify_services.cli lookup mainnet 0x...
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import List, Optional

import typer

from .adapters.chain_rpc import CHAINS, build_registry
from .config import Settings, load_config
from .errors import ApiError
from .logging import setup_logging
from .models.common import checksum_address
from .models.verify import InputData
from .services.verify import build_pipeline
from .storage.fs import FileRepository
from .storage.layout import RepositoryWriter

app = typer.Typer(add_completion=False, help="Verify Services CLI")


def _settings(repository: Optional[Path]) -> Settings:
    cfg = load_config()
    if repository is not None:
        cfg = cfg.model_copy(update={"repository_path": repository})
    return cfg


def _fail(err: ApiError) -> None:
    typer.echo(json.dumps(err.to_problem(), indent=2, default=str), err=True)
    raise typer.Exit(code=1)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
    log_format: str = typer.Option("console", "--log-format", help="json | console"),
):
    """
    Shared options for all subcommands.
    """
    setup_logging(level=(log_level or load_config().log_level), log_format=log_format)


@app.command("verify")
def verify(
    files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Metadata and source files"),
    chain: str = typer.Option(..., "--chain", help="Chain name or numeric id"),
    address: List[str] = typer.Option(..., "--address", "-a", help="Candidate address (repeatable, order matters)"),
    bytecode: Optional[str] = typer.Option(None, "--bytecode", help="Pre-fetched on-chain code for the first address"),
    repository: Optional[Path] = typer.Option(None, "--repository", "-r", help="Override REPOSITORY_PATH"),
):
    """
    Recompile and match; on success the verified files are written to the repository.
    """
    cfg = _settings(repository)
    data = InputData(
        repository=str(cfg.repository_path),
        chain=chain,
        addresses=list(address),
        files=[p.read_text(encoding="utf-8") for p in files],
        bytecode=bytecode,
    )

    async def _run():
        pipeline = build_pipeline(cfg)
        try:
            return await pipeline.inject(data)
        finally:
            await pipeline.aclose()

    try:
        match = asyncio.run(_run())
    except ApiError as e:
        _fail(e)
        return
    typer.echo(match.model_dump_json(indent=2))


@app.command("lookup")
def lookup(
    chain: str = typer.Argument(..., help="Chain name or numeric id"),
    address: str = typer.Argument(..., help="Contract address"),
    repository: Optional[Path] = typer.Option(None, "--repository", "-r", help="Override REPOSITORY_PATH"),
):
    """
    Print `perfect` or `partial` for a stored contract; exit code 2 when absent.
    """
    cfg = _settings(repository)
    writer = RepositoryWriter(FileRepository(), cfg.storage_layout)
    try:
        status = asyncio.run(writer.lookup(str(cfg.repository_path), chain, checksum_address(address)))
    except ApiError as e:
        _fail(e)
        return
    except ValueError:
        typer.echo(f"invalid address: {address}", err=True)
        raise typer.Exit(code=1)
    if status is None:
        typer.echo("not verified", err=True)
        raise typer.Exit(code=2)
    typer.echo(status.value)


@app.command("chains")
def chains():
    """
    List known chains and whether an RPC reader is configured for each.
    """
    registry = build_registry(load_config())
    for spec in CHAINS.values():
        mark = "configured" if spec.key in registry else "-"
        typer.echo(f"{spec.chain_id:>6}  {spec.name:<10} {mark}")


if __name__ == "__main__":
    app(prog_name="verify-services")

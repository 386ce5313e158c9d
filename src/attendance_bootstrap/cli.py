"""Typer CLI entrypoint for the attendance contract bootstrap."""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Optional, Tuple

import typer
from rich.console import Console
from rich.panel import Panel

from .artifacts import ArtifactStore
from .client import ChainGateway, Operator, get_web3, resolve_operator
from .config import BootstrapConfig
from .deployer import ContractDeployer
from .errors import BootstrapError, ConfigurationError, VerificationError
from .hashing import commitment_hex
from .logging_utils import LOGGER_NAME, configure_logging
from .orchestrator import BootstrapOrchestrator, BootstrapPlan, BootstrapReport
from .verifier import UnavailableVerifier, build_verifier

app = typer.Typer(help="Deploy the attendance contract and seed its first participants and session")
console = Console()

LOGGER = logging.getLogger(LOGGER_NAME)


def connect(config: BootstrapConfig) -> Tuple[ChainGateway, Operator]:
    """Open the RPC connection and resolve the signing operator."""

    web3 = get_web3(config.network)
    gateway = ChainGateway(
        web3,
        wait_slice=config.transactions.receipt_wait_slice,
        poll_latency=config.transactions.poll_latency,
    )
    return gateway, resolve_operator(web3, config.operator)


def execute(config: BootstrapConfig, *, skip_verify: bool = False, out: Optional[Console] = None) -> BootstrapReport:
    gateway, operator = connect(config)
    plan = BootstrapPlan.from_config(config, operator)

    verifier = None
    if config.verification.enabled and not skip_verify:
        try:
            verifier = build_verifier(
                gateway,
                config.verification,
                chain_id=config.network.chain_id,
                base_path=config.resolve_path("."),
            )
        except VerificationError as exc:
            verifier = UnavailableVerifier(str(exc))

    deployer = ContractDeployer(
        gateway,
        ArtifactStore(config.resolve_path(config.artifacts.root)),
        gas=config.transactions.deploy_gas,
    )
    orchestrator = BootstrapOrchestrator(gateway, deployer, verifier, out or console)
    return orchestrator.run(plan)


@app.command()
def run(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Bootstrap configuration YAML"),
    record: Optional[Path] = typer.Option(None, help="Write the run report as JSON to this path"),
    skip_verify: bool = typer.Option(False, "--skip-verify", help="Do not contact the block explorer"),
) -> None:
    """Deploy, verify, register participants and create the first session."""
    try:
        config = BootstrapConfig.load(config_path)
    except ConfigurationError as exc:
        console.print(f"Configuration error: {exc}", markup=False)
        raise typer.Exit(code=2)

    log_file = config.resolved_log_file()
    configure_logging(str(log_file) if log_file else None, level=config.logging.level)

    try:
        report = execute(config, skip_verify=skip_verify)
    except ConfigurationError as exc:
        LOGGER.error("Configuration error: %s", exc, extra={"event": "config_error"})
        console.print(f"Configuration error: {exc}", markup=False)
        raise typer.Exit(code=2)
    except BootstrapError as exc:
        LOGGER.error("Bootstrap failed: %s", exc, exc_info=True, extra={"event": "bootstrap_failed"})
        console.print(f"Bootstrap failed: {exc}", markup=False)
        raise typer.Exit(code=1)
    except Exception as exc:
        LOGGER.exception("Unexpected error during bootstrap", extra={"event": "bootstrap_crashed"})
        console.print(f"Unexpected error: {exc!r}", markup=False)
        raise typer.Exit(code=1)

    if record:
        try:
            record.parent.mkdir(parents=True, exist_ok=True)
            record.write_text(json.dumps(report.as_dict(), indent=2), encoding="utf-8")
        except OSError as exc:
            LOGGER.error("Unable to write run report: %s", exc, extra={"event": "record_failed"})
            console.print(f"Unable to write run report {record}: {exc}", markup=False)
            raise typer.Exit(code=1)
        console.print(f"Run report written to {record}")


@app.command()
def commitment(secret: Optional[str] = typer.Argument(None, help="Secret to commit to; prompted when omitted")) -> None:
    """Print the on-chain commitment (keccak-256) of a session secret."""
    if secret is None:
        secret = typer.prompt("Secret", hide_input=True)
    console.print(commitment_hex(secret))


@app.command()
def init_config(output: Path = typer.Option(Path("config/bootstrap.yml"), help="Output config path")) -> None:
    """Write a starter configuration."""
    template = Path(__file__).resolve().parents[2] / "config" / "bootstrap.example.yml"
    output.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(template, output)
    console.print(Panel.fit(f"Starter configuration written to [bold]{output}[/]"))


if __name__ == "__main__":  # pragma: no cover
    app()

# notary/cli/main.py
"""
CLI for fingerprinting, signing, registering and verifying documents.
"""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from notary.chain.workflow import SigningWorkflow
from notary.config import Settings
from notary.core.canon import canonical_json_str
from notary.core.errors import (
    ConnectivityError,
    ConsistencyError,
    InputError,
    NotaryError,
    OperationCancelled,
)
from notary.crypto.hashing import hash_file
from notary.crypto.keys import RESERVED_INDEX, IdentityProvider
from notary.storage import create_registry
from notary.storage.client import RegistryClient
from notary.verify.verifier import VerificationEngine

app = typer.Typer(
    name="notary",
    help="Fingerprint, sign, register and verify documents",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

EXIT_INVALID = 1
EXIT_FAILURE = 2


def fmt_ts(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat(timespec="seconds")


def short(value: str, head: int = 20, tail: int = 10) -> str:
    return value if len(value) <= head + tail + 3 else f"{value[:head]}...{value[-tail:]}"


def get_settings(ctx: typer.Context) -> Settings:
    return ctx.obj


def open_registry(settings: Settings) -> RegistryClient:
    uri = settings.registry_uri()
    try:
        backend = create_registry(uri, contract_address=settings.contract_address)
    except (ValueError, NotaryError) as e:
        console.print(f"[red]Cannot open registry {escape(uri)}: {escape(str(e))}[/]")
        raise typer.Exit(EXIT_FAILURE)
    return RegistryClient(backend)


def load_identity(settings: Settings) -> IdentityProvider:
    if not settings.mnemonic:
        console.print("[red]No seed phrase configured.[/]")
        console.print("  • Set env var: export NOTARY_MNEMONIC='word1 word2 ...'")
        console.print("  • Or pass --mnemonic")
        raise typer.Exit(EXIT_FAILURE)
    try:
        return IdentityProvider(
            settings.mnemonic,
            count=settings.account_count,
            default_index=settings.default_account,
        )
    except InputError as e:
        console.print(f"[red]{escape(e.message)}[/]")
        raise typer.Exit(EXIT_FAILURE)


def fail(e: NotaryError, code: int = EXIT_FAILURE) -> None:
    console.print(f"[red]✗ {escape(e.message)}[/]")
    raise typer.Exit(code)


@app.callback()
def main(
    ctx: typer.Context,
    registry: Optional[str] = typer.Option(
        None, "--registry", "-r",
        help="Registry URI: sqlite:///path.db, memory://, or an RPC URL (overrides NOTARY_REGISTRY)",
    ),
    contract: Optional[str] = typer.Option(
        None, "--contract", help="Registry contract address (overrides NOTARY_CONTRACT_ADDRESS)",
    ),
    mnemonic: Optional[str] = typer.Option(
        None, "--mnemonic", help="Seed phrase (overrides NOTARY_MNEMONIC)", show_default=False,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging to stderr"),
):
    """Manage signed document fingerprints."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    settings = Settings.from_env()
    if registry:
        settings.registry = registry
    if contract:
        settings.contract_address = contract
    if mnemonic:
        settings.mnemonic = mnemonic
    ctx.obj = settings


@app.command()
def accounts(ctx: typer.Context):
    """List the accounts derived from the seed phrase."""
    identity = load_identity(get_settings(ctx))

    table = Table(title="Derived Accounts")
    table.add_column("Index")
    table.add_column("Address")
    table.add_column("Note")
    for acct in identity.accounts:
        note = "reserved" if acct.index == RESERVED_INDEX else ""
        if acct.index == identity.default_index:
            note = "default"
        table.add_row(str(acct.index), acct.address, note)
    console.print(table)


@app.command("hash")
def hash_cmd(file: Path = typer.Argument(..., help="File to fingerprint")):
    """Print the SHA-256 fingerprint of a file."""
    try:
        digest = asyncio.run(hash_file(file))
    except InputError as e:
        fail(e, EXIT_INVALID)
    except NotaryError as e:
        fail(e)
    console.print(digest.hex)


@app.command()
def sign(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="File to sign"),
    account: Optional[int] = typer.Option(None, "--account", "-a", help="Account index (default from config)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompts"),
    sign_only: bool = typer.Option(False, "--sign-only", help="Sign but do not store in the registry"),
):
    """Sign a file's fingerprint and store it in the registry."""
    settings = get_settings(ctx)
    identity = load_identity(settings)

    def confirm(stage: str, details: dict) -> bool:
        if yes:
            return True
        if stage == "sign":
            console.print(f'You are about to sign:\n  "{details["message"]}"\n  Signer: {details["signer"]}')
            return typer.confirm("Proceed?")
        console.print("You are about to store:")
        console.print(f"  Document Hash: {details['digest']}")
        console.print(f"  Signer:        {details['signer']}")
        console.print(f"  Timestamp:     {fmt_ts(details['timestamp'])}")
        console.print(f"  Signature:     {short(details['signature'])}")
        return typer.confirm("Proceed?")

    async def run():
        digest = await hash_file(file)
        acct = identity.connect(account)
        client = open_registry(settings)
        async with client:
            workflow = SigningWorkflow(identity, client, confirm=confirm)
            pending = await workflow.prepare(digest, acct)
            console.print("[green]✓ Document signed[/]")
            console.print(f"  Hash:      {pending.record.digest.hex}")
            console.print(f"  Signer:    {pending.record.signer}")
            console.print(f"  Timestamp: {fmt_ts(pending.record.timestamp)}")
            console.print(f"  Signature: {pending.record.signature_hex}")
            if sign_only:
                return
            await workflow.store(pending)
            console.print("[green]✓ Stored in registry[/]")
            console.print(f"  Transaction: {pending.receipt.transaction_id}")

    try:
        asyncio.run(run())
    except OperationCancelled as e:
        console.print(f"[yellow]{escape(e.message)}[/]")
        raise typer.Exit(EXIT_INVALID)
    except InputError as e:
        fail(e, EXIT_INVALID)
    except NotaryError as e:
        fail(e)


@app.command()
def verify(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="File to verify"),
    signer: str = typer.Option(..., "--signer", "-s", help="Address claimed to have signed the file"),
    check_signature: bool = typer.Option(
        False, "--check-signature", help="Also recover the signer from the stored signature",
    ),
):
    """Check that a file is registered and was signed by the given address."""
    settings = get_settings(ctx)

    async def run():
        client = open_registry(settings)
        async with client:
            engine = VerificationEngine(client, check_signature=check_signature)
            return await engine.verify(file, signer)

    try:
        verdict = asyncio.run(run())
    except InputError as e:
        fail(e, EXIT_INVALID)
    except ConsistencyError as e:
        fail(e)
    except ConnectivityError as e:
        console.print(f"[red]✗ Verification failed: {escape(e.message)}[/]")
        console.print("  Make sure the registry is reachable and the contract is deployed.")
        raise typer.Exit(EXIT_FAILURE)
    except NotaryError as e:
        fail(e)

    if verdict.valid:
        console.print(f"[green]✓ {verdict}[/]")
    else:
        console.print(f"[red]✗ {verdict}[/]")
    if verdict.record:
        console.print(f"  Hash:      {verdict.record.digest.hex}")
        console.print(f"  Signer:    {verdict.record.signer}")
        console.print(f"  Timestamp: {fmt_ts(verdict.record.timestamp)}")
    if not verdict.valid:
        raise typer.Exit(EXIT_INVALID)


@app.command()
def history(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Show at most N records"),
):
    """List registered documents in insertion order."""
    settings = get_settings(ctx)

    async def run():
        client = open_registry(settings)
        async with client:
            total = await client.count()
            return total, await client.list_records(limit=limit)

    try:
        total, records = asyncio.run(run())
    except NotaryError as e:
        fail(e)

    if not records:
        console.print("[yellow]No documents registered yet.[/]")
        return

    table = Table(title=f"Registered Documents ({total})")
    table.add_column("Hash")
    table.add_column("Signer")
    table.add_column("Timestamp")
    for record in records:
        table.add_row(record.digest.hex, record.signer, fmt_ts(record.timestamp))
    console.print(table)


@app.command()
def export(
    ctx: typer.Context,
    output: Path = typer.Option(Path("registry.jsonl"), "--output", "-o", help="Output file"),
):
    """Export every registered record as JSONL (one canonical JSON record per line)."""
    settings = get_settings(ctx)

    async def run():
        client = open_registry(settings)
        async with client:
            return await client.list_records()

    try:
        records = asyncio.run(run())
    except NotaryError as e:
        fail(e)

    with open(output, "w", encoding="utf-8") as f:
        for record in records:
            f.write(canonical_json_str(record.to_dict()))
            f.write("\n")

    console.print(f"[green]Exported {len(records)} records to {escape(str(output))}[/]")


if __name__ == "__main__":
    app()

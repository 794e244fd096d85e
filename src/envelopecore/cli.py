"""envctl - sign and verify payload envelopes from the command line."""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from pathlib import Path

import click

from envelopecore import __version__
from envelopecore.codec import pae
from envelopecore.config import EnvelopeConfig
from envelopecore.envelope import Envelope
from envelopecore.errors import ConfigError, NoSignersError
from envelopecore.providers import KeyProvider, generate_provider, load_provider, provider_from_env
from envelopecore.signer import EnvelopeSigner
from envelopecore.verifier import EnvelopeVerifier


def handle_error(error: Exception, debug: bool) -> None:
    """Handle errors with structured output.

    Args:
        error: The exception that occurred
        debug: Whether to show full traceback
    """
    if debug:
        traceback.print_exc()
    else:
        click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def load_providers(key_paths: tuple[Path, ...], config: EnvelopeConfig) -> list[KeyProvider]:
    """Load providers from explicit key files, configured paths, or the environment."""
    paths = list(key_paths) or [Path(p) for p in config.key_paths]
    providers = [load_provider(p) for p in paths]

    if not providers:
        env_provider = provider_from_env()
        if env_provider is not None:
            providers.append(env_provider)

    if not providers:
        raise NoSignersError("no keys given (use --key, key_paths in config, or ENVELOPE_SIGNING_PRIVATE_KEY)")
    return providers


@click.group()
@click.version_option(version=__version__, prog_name="envctl")
@click.option('--config', '-c', 'config_path', type=click.Path(exists=True, path_type=Path), help='YAML config file')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False))
@click.option('--debug', is_flag=True, help='Enable debug mode (show full tracebacks)')
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, log_level: str | None, debug: bool):
    """Envelope CLI - sign payloads bound to their type, verify signed envelopes."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    try:
        config = EnvelopeConfig.from_yaml(config_path) if config_path else EnvelopeConfig.from_env()
        if log_level:
            config.log_level = log_level.upper()
    except ConfigError as e:
        handle_error(e, debug)

    logging.basicConfig(level=config.log_level_value, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj['config'] = config


@cli.command()
@click.option('--algorithm', '-a', type=click.Choice(['ed25519', 'ecdsa']), help='Key algorithm (default from config)')
@click.option('--out', '-o', required=True, type=click.Path(path_type=Path), help='Private key path; public key gets .pub')
@click.pass_context
def keygen(ctx: click.Context, algorithm: str | None, out: Path):
    """Generate a key pair as PEM files."""
    debug = ctx.obj.get('debug', False)
    config: EnvelopeConfig = ctx.obj['config']

    try:
        provider = generate_provider(algorithm or config.algorithm)
        out.parent.mkdir(parents=True, exist_ok=True)

        # Private key is created owner-only; never overwrite an existing key
        try:
            fd = os.open(out, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        except FileExistsError:
            raise ConfigError(f"Key already exists: {out}") from None
        with os.fdopen(fd, "wb") as f:
            f.write(provider.private_pem())

        pub_path = out.with_name(out.name + ".pub")
        pub_path.write_bytes(provider.public_pem())

        click.echo(provider.key_id())
    except Exception as e:
        handle_error(e, debug)


@cli.command()
@click.option('--key', '-k', 'keys', multiple=True, type=click.Path(exists=True, path_type=Path),
              help='Private key PEM (repeat for multiple signers)')
@click.option('--type', '-t', 'payload_type', help='Payload type (default from config)')
@click.option('--in', '-i', 'input_path', required=True, type=click.Path(exists=True, path_type=Path))
@click.option('--out', '-o', type=click.Path(path_type=Path), help='Envelope output (default: stdout)')
@click.pass_context
def sign(ctx: click.Context, keys: tuple[Path, ...], payload_type: str | None, input_path: Path, out: Path | None):
    """Sign a file into an envelope."""
    debug = ctx.obj.get('debug', False)
    config: EnvelopeConfig = ctx.obj['config']

    try:
        signer = EnvelopeSigner(*load_providers(keys, config))
        envelope = signer.sign_payload(payload_type or config.payload_type, input_path.read_bytes())

        if out:
            envelope.write_json(out)
            click.echo(f"Envelope written to {out}", err=True)
        else:
            click.echo(envelope.to_json(indent=2))
    except Exception as e:
        handle_error(e, debug)


@cli.command()
@click.option('--key', '-k', 'keys', multiple=True, type=click.Path(exists=True, path_type=Path),
              help='Public or private key PEM (repeat for multiple verifiers)')
@click.option('--in', '-i', 'input_path', required=True, type=click.Path(exists=True, path_type=Path))
@click.pass_context
def verify(ctx: click.Context, keys: tuple[Path, ...], input_path: Path):
    """Verify every signature in an envelope file."""
    debug = ctx.obj.get('debug', False)
    config: EnvelopeConfig = ctx.obj['config']

    try:
        verifier = EnvelopeVerifier(*load_providers(keys, config))
        envelope = Envelope.read_json(input_path)
    except Exception as e:
        handle_error(e, debug)

    try:
        result = verifier.verify(envelope)
    except Exception as e:
        if debug:
            traceback.print_exc()
        click.echo(json.dumps({
            "valid": False,
            "payload_type": envelope.payload_type,
            "error": str(e),
            "error_type": type(e).__name__,
        }, indent=2, sort_keys=True))
        sys.exit(1)

    click.echo(json.dumps(result.to_dict(), indent=2, sort_keys=True))


@cli.command(name="pae")
@click.option('--type', '-t', 'payload_type', help='Payload type (default from config)')
@click.option('--in', '-i', 'input_path', required=True, type=click.Path(exists=True, path_type=Path))
@click.pass_context
def pae_command(ctx: click.Context, payload_type: str | None, input_path: Path):
    """Write the pre-authentication encoding of a file to stdout."""
    config: EnvelopeConfig = ctx.obj['config']

    message = pae(payload_type or config.payload_type, input_path.read_bytes())
    click.get_binary_stream('stdout').write(message)


@cli.command()
@click.option('--in', '-i', 'input_path', required=True, type=click.Path(exists=True, path_type=Path))
@click.pass_context
def payload(ctx: click.Context, input_path: Path):
    """Write the decoded payload of an envelope to stdout."""
    debug = ctx.obj.get('debug', False)

    try:
        envelope = Envelope.read_json(input_path)
        data = envelope.decoded_payload()
    except Exception as e:
        handle_error(e, debug)

    click.get_binary_stream('stdout').write(data)


def main() -> None:
    """Entry point."""
    cli()


if __name__ == '__main__':
    main()

#!/usr/bin/env python3
"""
Upload environment variables to AWS Parameter Store.

This script reads the mail, auth and export settings from a .env file and
uploads them to AWS Parameter Store under the E-Stock prefix, encrypting the
secrets.
"""

import os
import sys
from pathlib import Path

import boto3
import click
from botocore.exceptions import ClientError
from dotenv import load_dotenv

# Parameter name -> environment variable
PARAMETER_SOURCES = {
    "mail/from": "MAIL_FROM",
    "mail/brand-name": "APP_BRAND_NAME",
    "auth/reset-continue-url": "RESET_CONTINUE_URL",
    "supabase/service-role-key": "SUPABASE_SERVICE_ROLE_KEY",
    "export/engines": "EXPORT_ENGINES",
}

SECRET_MARKERS = ("secret", "key")


def load_env_file(env_file_path: str = ".env") -> dict:
    """
    Load the uploadable settings from a .env file.

    Args:
        env_file_path: Path to .env file

    Returns:
        Dictionary of parameter names (without prefix) to values
    """
    if not Path(env_file_path).exists():
        click.secho(f"Error: {env_file_path} file not found", fg="red", err=True)
        sys.exit(1)

    load_dotenv(env_file_path)

    params = {name: os.getenv(env_var) for name, env_var in PARAMETER_SOURCES.items()}
    params = {k: v for k, v in params.items() if v}

    if not params:
        click.secho("Warning: No E-Stock parameters found in .env file", fg="yellow")
        click.echo(f"Expected variables: {', '.join(PARAMETER_SOURCES.values())}")

    return params


def is_secret(param_name: str) -> bool:
    return any(marker in param_name.lower() for marker in SECRET_MARKERS)


def upload_parameters(
    parameters: dict, parameter_prefix: str = "/e-stock", dry_run: bool = False
) -> None:
    """
    Upload parameters to AWS Parameter Store.

    Args:
        parameters: Dictionary of parameter names to values
        parameter_prefix: Prefix for parameter names
        dry_run: If True, only print what would be uploaded
    """
    if not parameters:
        click.secho("No parameters to upload", fg="yellow")
        return

    if dry_run:
        click.secho("DRY RUN - Would upload the following parameters:", fg="blue")
        for param_name, value in parameters.items():
            full_name = f"{parameter_prefix}/{param_name}"
            shown = "********" if is_secret(param_name) else value
            click.echo(f"  {full_name} = {shown}")
        return

    ssm = boto3.client("ssm")

    with click.progressbar(parameters.items(), label="Uploading parameters") as items:
        for param_name, value in items:
            full_name = f"{parameter_prefix}/{param_name}"

            try:
                response = ssm.put_parameter(
                    Name=full_name,
                    Value=value,
                    Type="SecureString" if is_secret(param_name) else "String",
                    Description=f"E-Stock parameter: {param_name}",
                    Overwrite=True,
                )
                click.secho(
                    f"Uploaded {full_name} (version {response['Version']})", fg="green"
                )

            except ClientError as e:
                click.secho(f"Failed to upload {full_name}: {e}", fg="red", err=True)


def verify_parameters(parameters: dict, parameter_prefix: str = "/e-stock") -> bool:
    """
    Verify that parameters were uploaded correctly.

    Returns:
        True when every parameter exists
    """
    click.secho("\nVerifying uploaded parameters...", fg="blue")
    ssm = boto3.client("ssm")
    ok = True

    for param_name in parameters:
        full_name = f"{parameter_prefix}/{param_name}"

        try:
            response = ssm.get_parameter(Name=full_name, WithDecryption=True)
            click.secho(
                f"{full_name} exists (version {response['Parameter']['Version']})",
                fg="green",
            )
        except ClientError as e:
            ok = False
            if e.response["Error"]["Code"] == "ParameterNotFound":
                click.secho(f"{full_name} not found", fg="red")
            else:
                click.secho(f"Error checking {full_name}: {e}", fg="red")

    return ok


@click.command()
@click.option("--env-file", default=".env", help="Path to .env file", show_default=True)
@click.option("--prefix", default="/e-stock", help="Parameter Store prefix", show_default=True)
@click.option("--dry-run", is_flag=True, help="Show what would be uploaded without uploading")
@click.option("--verify", is_flag=True, help="Verify parameters after upload")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
def main(env_file: str, prefix: str, dry_run: bool, verify: bool, verbose: bool):
    """
    Upload E-Stock settings from a .env file to AWS Parameter Store.
    """
    if verbose:
        click.secho(f"Loading environment variables from {env_file}", fg="blue")

    parameters = load_env_file(env_file)

    if not parameters:
        click.secho("No parameters found to upload", fg="red", err=True)
        sys.exit(1)

    click.secho(f"Found {len(parameters)} parameters", fg="green")

    if verbose:
        click.secho("Parameters to process:", fg="blue")
        for param_name in parameters:
            click.echo(f"  - {param_name}")

    upload_parameters(parameters, prefix, dry_run)

    if dry_run:
        click.secho("\nDry run complete. Run without --dry-run to upload.", fg="blue")
        return

    if verify and not verify_parameters(parameters, prefix):
        sys.exit(1)

    click.secho("\nParameter upload complete!", fg="green")
    click.echo(f"Parameters are now available at prefix: {prefix}")


if __name__ == "__main__":
    main()

# cli.py
import click
import uvicorn

from pdf_gateway.main import configure_logging, create_app
from pdf_gateway.settings import get_settings


@click.group()
def cli():
    """CLI commands for the PDF gateway"""
    pass


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to settings.host)")
@click.option("--port", type=int, default=None, help="Bind port (defaults to settings.port)")
def serve(host, port):
    """Run the API with uvicorn"""
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    click.echo("Current Configuration:")
    click.echo(f"  App Name: {settings.app_name}")
    click.echo(f"  API Prefix: {settings.api_prefix or '/'}")
    click.echo(f"  AWS Region: {settings.aws_region}")
    click.echo(f"  AWS Endpoint: {settings.aws_endpoint_url}")
    click.echo(f"  S3 Bucket: {settings.s3_bucket_name}")
    click.echo(f"  Credentials: {'explicit' if settings.aws_access_key_id else 'boto3 default chain'}")
    click.echo(f"  Max Upload Bytes: {settings.max_upload_bytes}")
    click.echo(f"  Signed URL TTL: {settings.signed_url_ttl_seconds}s")
    click.echo(f"  Log Level: {settings.log_level}")


if __name__ == "__main__":
    cli()

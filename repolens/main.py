from typing import Optional
from rich.console import Console
from repolens.config import RepolensConfig
from repolens.core import RepolensCore
from repolens.logging import initialize_logging
from repolens.store import create_db_engine, init_db
import asyncio
import click
import logging

console = Console()


def load_config(config_path: str) -> RepolensConfig:
    """Load configuration from YAML file."""
    return RepolensConfig.from_yaml(config_path)


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging")
def cli(verbose: bool):
    initialize_logging(logging.DEBUG if verbose else logging.INFO)


@cli.command("init-db")
@click.option("--config", required=True, help="Path to configuration file")
def init_database(config: str):
    """Create the database tables."""
    try:
        cfg = load_config(config)
        dimension = cfg.embedding_provider.config.get("dimension", 768)
        init_db(create_db_engine(cfg.database_url), vector_dimension=dimension)
        console.print("[bold green]✓[/bold green] Database initialized")
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {str(e)}")
        raise click.Abort()


@cli.command()
@click.option("--config", required=True, help="Path to configuration file")
@click.option("--project-id", required=True, help="Project identifier")
@click.option("--repo-url", required=True, help="GitHub repository URL")
@click.option("--token", default=None, help="GitHub token (overrides the configured one)")
def index(config: str, project_id: str, repo_url: str, token: Optional[str]):
    """Index source files of a repository."""
    try:
        cfg = load_config(config)
        core = RepolensCore(cfg, console)
        result = asyncio.run(core.index_repository(project_id, repo_url, token))
        console.print(
            f"[bold green]✓[/bold green] Indexing completed: "
            f"{result['indexed']} indexed, {result['failed']} failed")
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {str(e)}")
        raise click.Abort()


@cli.command()
@click.option("--config", required=True, help="Path to configuration file")
@click.option("--project-id", required=True, help="Project identifier")
def poll(config: str, project_id: str):
    """Summarize commits that have not been processed yet."""
    try:
        cfg = load_config(config)
        core = RepolensCore(cfg, console)
        result = asyncio.run(core.poll_commits(project_id))
        console.print(
            f"[bold green]✓[/bold green] Processed {result['count']} new commits")
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {str(e)}")
        raise click.Abort()


@cli.command()
@click.option("--config", required=True, help="Path to configuration file")
@click.option("--host", default="0.0.0.0", help="Host to bind the server to")
@click.option("--port", default=8000, help="Port to run the server on")
def api(config: str, host: str, port: int):
    """Run the ingestion API server."""
    try:
        cfg = load_config(config)
        core = RepolensCore(cfg, console)

        from repolens.api import RepolensAPI
        console.print(f"[bold blue]Starting API server on {host}:{port}[/bold blue]")
        api_server = RepolensAPI(core)
        api_server.run(host=host, port=port)

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {str(e)}")
        raise click.Abort()


if __name__ == "__main__":
    cli()

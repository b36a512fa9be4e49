import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from .configuration import __version__, load_config
from .logging_config import configure_logging, session_log_file


@click.command()
@click.option(
    "--clone-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for clones without an explicit target_path",
)
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Load environment variables from this .env file",
)
@click.option("--tools", help="Comma separated tools to enable (github,filesystem)")
@click.option("-v", "--verbose", count=True)
@click.option(
    "--enable-file-logging",
    is_flag=True,
    help="Enable logging to file in logs/ directory",
)
@click.option("--structured-logs", is_flag=True, help="Emit JSON log lines on stderr")
@click.version_option(__version__)
def main(
    clone_dir: Path | None,
    env_file: Path | None,
    tools: str | None,
    verbose: int,
    enable_file_logging: bool,
    structured_logs: bool,
) -> None:
    """MCP GitFS Server - Git, GitHub and filesystem tools for MCP"""
    import asyncio

    from .server import serve

    if env_file is None and Path(".env").exists():
        env_file = Path(".env")

    try:
        config = load_config(env_file=env_file, clone_dir=clone_dir, enabled_tools=tools)
    except ValidationError as e:
        raise click.BadParameter(str(e), param_hint="configuration") from e

    log_level = config.log_level
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"

    log_file = session_log_file(Path.cwd() / "logs") if enable_file_logging else None
    configure_logging(log_level, structured=structured_logs, log_file=log_file)
    if log_file is not None:
        print(f"📝 Debug logging enabled: {log_file}", file=sys.stderr)

    logging.getLogger(__name__).debug(f"Starting with log level {log_level}")
    asyncio.run(serve(config))


if __name__ == "__main__":
    main()

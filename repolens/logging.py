from datetime import datetime
from typing import Optional
from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text
import logging

# client libraries log every request at INFO
QUIET_LOGGERS = (
    "httpx",
    "openai",
    "github",
    "urllib3",
    "sqlalchemy.engine",
    "pinecone_plugin_interface.logging",
)


class CustomRichHandler(RichHandler):
    LEVEL_STYLES = {
        "debug": "dim cyan",
        "info": "blue",
        "warning": "yellow",
        "error": "bold red",
        "critical": "bold red reverse",
    }

    def render_message(self, record, message):
        """Render ``[time] [LEVEL] [module] message`` with pipeline modules shortened."""
        log_time = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        time = Text(f"[{log_time}]", style="dim cyan")

        name = record.name
        if name.startswith("repolens."):
            name = name[len("repolens."):]
        logger_name = Text(f"[{name}]", style="magenta")

        level_style = self.LEVEL_STYLES.get(record.levelname.lower(), "blue")
        level = Text(f"[{record.levelname}]", style=level_style)

        # ex: [10:00:00] [WARNING] [retry] Summary batch 2/5: rate limited, waiting 60.0s
        return Text.assemble(time, " ", level, " ", logger_name, " ", message)


def initialize_logging(level: int = logging.INFO, console: Optional[Console] = None):
    """Send log records through rich; ``level`` applies to repolens loggers only."""
    rich_handler = CustomRichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_level=False,
        show_path=level <= logging.DEBUG,
        rich_tracebacks=True,
        markup=False
    )

    logging.basicConfig(level=logging.WARNING, handlers=[rich_handler])
    logging.getLogger("repolens").setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

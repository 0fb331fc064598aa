"""Connection configuration for the truth sync server.

Reads wiki connection settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    WIKI_URL: Wiki base URL, the directory holding api.php (required)
    WIKI_USERNAME: HTTP auth username (optional)
    WIKI_PASSWORD: HTTP auth password (optional, required with WIKI_USERNAME)
    WIKI_INSECURE: Skip SSL verification (optional, default: false)
    WIKI_DEBUG: Enable debug logging (optional, default: false)
    WIKI_MAX_PARALLEL_REQUESTS: Max parallel API requests (optional, default: 5)
    TRUTH_SYNC_STATE_DIR: Directory for the index, job queue and caches
        (optional, default: .truth_sync)
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = ".truth_sync"


@dataclass
class Config:
    wiki_url: str
    username: str = ""
    password: str = ""
    insecure: bool = False
    debug: bool = False
    max_parallel_requests: int = 5
    state_dir: str = DEFAULT_STATE_DIR


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If URL format is invalid or credentials are incomplete.
    """
    config.wiki_url = config.wiki_url.strip()

    if not config.wiki_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid wiki URL '{config.wiki_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.wiki_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid wiki URL '{config.wiki_url}': URL must include a hostname"
        )

    config.wiki_url = config.wiki_url.removesuffix("/")

    # Credentials are optional, but only as a pair
    if config.username.strip() and not config.password.strip():
        raise ValueError(
            "Wiki password cannot be empty when a username is set. "
            "Set WIKI_PASSWORD environment variable."
        )

    if not config.state_dir.strip():
        raise ValueError(
            "State directory cannot be empty. Set TRUTH_SYNC_STATE_DIR or remove it."
        )

    if config.insecure:
        logger.warning(
            "WARNING: SSL verification disabled (insecure=True). Use only for development."
        )


def load_config(
    url: str | None = None,
    username: str | None = None,
    password: str | None = None,
    insecure: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        url: Override wiki URL.
        username: Override HTTP auth username.
        password: Override HTTP auth password.
        insecure: Skip SSL verification (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Dict of values from the YAML ``wiki`` section, plus
            an optional ``state_dir`` key from the ``index`` section.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If the wiki URL is missing after checking all sources,
            or a numeric setting is out of range.
    """
    fb = yaml_fallbacks or {}

    wiki_url = url or os.getenv("WIKI_URL") or fb.get("url")
    if not wiki_url:
        raise ValueError(
            "Wiki URL not found. Set WIKI_URL environment variable, "
            "pass --url CLI argument, or add 'url' to config.yml."
        )

    wiki_username = (
        username or os.getenv("WIKI_USERNAME") or fb.get("username") or ""
    )
    wiki_password = (
        password or os.getenv("WIKI_PASSWORD") or fb.get("password") or ""
    )

    def get_bool_env(key: str) -> bool | None:
        """Return True/False from env var, or None if unset."""
        val = os.getenv(key)
        if val is None:
            return None
        return val.lower() in ("true", "1", "yes", "on")

    if insecure:
        final_insecure = True
    else:
        env_insecure = get_bool_env("WIKI_INSECURE")
        if env_insecure is not None:
            final_insecure = env_insecure
        else:
            final_insecure = bool(fb.get("insecure", False))

    if debug:
        final_debug = True
    else:
        env_debug = get_bool_env("WIKI_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    max_parallel_raw = os.getenv("WIKI_MAX_PARALLEL_REQUESTS")
    if max_parallel_raw is not None:
        try:
            final_max_parallel = int(max_parallel_raw)
        except ValueError:
            raise ValueError(
                f"Invalid WIKI_MAX_PARALLEL_REQUESTS '{max_parallel_raw}': must be a number between 1 and 100"
            ) from None
        if not (1 <= final_max_parallel <= 100):
            raise ValueError(
                f"Invalid WIKI_MAX_PARALLEL_REQUESTS '{max_parallel_raw}': must be a number between 1 and 100"
            )
    elif "max_parallel_requests" in fb:
        final_max_parallel = int(fb["max_parallel_requests"])
    else:
        final_max_parallel = 5

    state_dir = (
        os.getenv("TRUTH_SYNC_STATE_DIR")
        or fb.get("state_dir")
        or DEFAULT_STATE_DIR
    )

    config = Config(
        wiki_url=wiki_url.strip(),
        username=wiki_username.strip(),
        password=wiki_password.strip(),
        insecure=final_insecure,
        debug=final_debug,
        max_parallel_requests=final_max_parallel,
        state_dir=state_dir,
    )

    validate_config(config)

    return config

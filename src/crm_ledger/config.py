import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from dotenv import dotenv_values

from .errors import ConfigError
from .logging import get_logger
from .paths import default_cache_dir, expand_abs

log = get_logger("config")

POLICY_ALL = "all"
POLICY_EXCLUDE_CANCELLED = "exclude-cancelled"
POLICIES = (POLICY_ALL, POLICY_EXCLUDE_CANCELLED)

DEFAULT_TIMEOUT = 30


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    This makes running tools from subdirectories (e.g., `src/`) still find
    the repository-level `.env`.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Read the nearest .env without mutating os.environ."""
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    try:
        values = dotenv_values(path)
    except (OSError, UnicodeDecodeError) as e:
        log.warning(f"Failed reading .env: {e}")
        return {}
    env = {k: v.strip() for k, v in values.items() if v is not None}
    log.debug(f"Loaded {len(env)} key(s) from .env at {path}")
    return env


def _lookup(env: Dict[str, str], *names: str) -> Optional[str]:
    for name in names:
        v = os.environ.get(name)
        if v and v.strip():
            return v.strip()
    for name in names:
        v = env.get(name)
        if v:
            return v
    return None


def load_remote(dotenv_dir: str) -> Tuple[Optional[str], Optional[str]]:
    """Return (url, api_key) for the remote record store.

    Accepts the Vite-style names the web console uses as fallbacks.
    """
    env = _read_dotenv(dotenv_dir)
    url = _lookup(env, "SUPABASE_URL", "VITE_SUPABASE_URL")
    key = _lookup(env, "SUPABASE_KEY", "SUPABASE_ANON_KEY", "VITE_SUPABASE_ANON_KEY")
    if url:
        log.debug(f"Remote store URL resolved: {url}")
    return url, key


def load_timeout(dotenv_dir: str) -> int:
    env = _read_dotenv(dotenv_dir)
    raw = _lookup(env, "CRM_HTTP_TIMEOUT")
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        value = int(raw)
    except ValueError:
        log.warning(f"Ignoring non-integer CRM_HTTP_TIMEOUT={raw!r}")
        return DEFAULT_TIMEOUT
    return value if value > 0 else DEFAULT_TIMEOUT


def load_policy(dotenv_dir: str) -> str:
    env = _read_dotenv(dotenv_dir)
    raw = (_lookup(env, "CRM_CONSUMPTION_POLICY") or POLICY_ALL).lower()
    if raw not in POLICIES:
        log.warning(f"Unknown CRM_CONSUMPTION_POLICY={raw!r}; using '{POLICY_ALL}'")
        return POLICY_ALL
    return raw


def load_cache_dir(dotenv_dir: str) -> str:
    env = _read_dotenv(dotenv_dir)
    raw = _lookup(env, "CRM_CACHE_DIR")
    return expand_abs(raw) if raw else default_cache_dir(dotenv_dir)


@dataclass
class LedgerSettings:
    supabase_url: Optional[str]
    supabase_key: Optional[str]
    timeout: int = DEFAULT_TIMEOUT
    consumption_policy: str = POLICY_ALL
    cache_dir: Optional[str] = None

    def require_remote(self) -> Tuple[str, str]:
        if not self.supabase_url or not self.supabase_key:
            raise ConfigError("SUPABASE_URL and SUPABASE_KEY must be set (env or .env)")
        return self.supabase_url, self.supabase_key


def load_settings(dotenv_dir: Optional[str] = None) -> LedgerSettings:
    """Assemble LedgerSettings from the environment and the nearest .env."""
    base = dotenv_dir or os.getcwd()
    url, key = load_remote(base)
    settings = LedgerSettings(
        supabase_url=url,
        supabase_key=key,
        timeout=load_timeout(base),
        consumption_policy=load_policy(base),
        cache_dir=load_cache_dir(base),
    )
    log.debug(
        "Settings: url=%s key=%s timeout=%ss policy=%s cache=%s",
        settings.supabase_url,
        "set" if settings.supabase_key else "missing",
        settings.timeout,
        settings.consumption_policy,
        settings.cache_dir,
    )
    return settings

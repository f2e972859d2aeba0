"""Command-line entry point: ``python run.py serve`` starts the FaceCloud API."""

import os
import sys
from typing import Dict, List, Tuple
from dotenv import load_dotenv

# .env is read before facecloud.config computes CONFIG on import.
load_dotenv()

PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from facecloud.config import CONFIG, reload_config
from facecloud.logger import log


def _parse_cli_args(extra_args: List[str]) -> Tuple[Dict[str, object], List[str]]:
    """Parse CLI-style ``--key value`` pairs and return remaining positional args."""

    cli_params: Dict[str, object] = {}
    residual: List[str] = []

    i = 0
    while i < len(extra_args):
        token = extra_args[i]
        if token.startswith("--") and len(token) > 2:
            key = token[2:].strip().replace("-", "_")
            value: object = True
            if i + 1 < len(extra_args) and not extra_args[i + 1].startswith("--"):
                value = extra_args[i + 1]
                i += 2
            else:
                i += 1
            cli_params[key] = value
        else:
            residual.append(token)
            i += 1

    return cli_params, residual


def _print_usage() -> None:
    usage = (
        "Usage:\n"
        "  python run.py serve [--host 0.0.0.0] [--port 8000] [--reload]\n"
    )
    print(usage.strip())


def main(argv: list[str] | None = None):
    args = argv if argv is not None else sys.argv[1:]
    if not args or args[0] != "serve":
        _print_usage()
        return 1

    cli_params, residual = _parse_cli_args(args[1:])
    if residual:
        print(f"[run error] Unexpected arguments: {' '.join(residual)}", file=sys.stderr)
        return 1

    try:
        port = int(cli_params.get("port") or os.getenv("PORT", "8000"))
    except ValueError:
        print("[run error] --port must be an integer", file=sys.stderr)
        return 1
    host = str(cli_params.get("host") or os.getenv("HOST", "0.0.0.0"))
    reload_enabled = bool(cli_params.get("reload")) or CONFIG.is_development

    reload_config()
    if not CONFIG.supabase_configured:
        print("[run error] SUPABASE_URL and SUPABASE_ANON_KEY must be set", file=sys.stderr)
        return 1

    import uvicorn

    log("Starting FaceCloud API", host=host, port=port, environment=CONFIG.environment)
    uvicorn.run("facecloud.api.main:app", host=host, port=port, reload=reload_enabled)
    return 0


if __name__ == "__main__":
    sys.exit(main())

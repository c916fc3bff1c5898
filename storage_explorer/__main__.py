"""Module entry point for the storage explorer."""
import argparse
import logging
from pathlib import Path
import sys

from .settings import SettingsStorage, default_state_dir, parse_port
from .ui_utils import load_package_info


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storage-explorer",
        description="Browse S3-compatible object storage through saved connection profiles.",
    )
    parser.add_argument(
        "mode",
        nargs="?",
        choices=("serve", "gui"),
        default="serve",
        help="run the JSON API server (default) or the desktop window",
    )
    parser.add_argument("--host", help="host to bind (default: $HOST or 127.0.0.1)")
    parser.add_argument("--port", help="port to listen on (default: $PORT or 3000)")
    parser.add_argument(
        "--state-dir",
        type=Path,
        default=None,
        help="directory holding settings and saved profiles",
    )
    parser.add_argument("--log-level", default="WARNING", help="logging level, e.g. DEBUG or INFO")
    parser.add_argument("-v", "--version", action="store_true", help="show package version and exit")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(load_package_info().version or "unknown")
        return 0

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    state_dir = args.state_dir or default_state_dir()
    settings = SettingsStorage(state_dir / "settings.json").load().with_environment()

    if args.mode == "gui":
        import tkinter as tk

        from .controller import ExplorerController
        from .persistence import JsonFileStore
        from .profiles import ProfileStore
        from .tk_view import ExplorerApp

        root = tk.Tk()
        profiles = ProfileStore(JsonFileStore(state_dir / "state.json"))
        ExplorerApp(root, ExplorerController(profiles=profiles, settings=settings))
        root.mainloop()
        return 0

    host = args.host or settings.host
    port = settings.port
    if args.port is not None:
        port = parse_port(args.port)
        if port is None:
            parser.error("Invalid --port value.")

    from .server import create_app

    create_app().run(host=host, port=port)
    return 0


if __name__ == "__main__":
    sys.exit(main())

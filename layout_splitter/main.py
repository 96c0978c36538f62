from __future__ import annotations

import argparse
import json
import os
import sys

from layout_splitter.logger import get_logger
from layout_splitter.metrics import metrics

# --- CLI logging options -----------------------------------------------------
# Logging options are reflected into environment variables
# (LAYOUT_SPLITTER_LOG_LEVEL, LAYOUT_SPLITTER_LOG_CATS, LAYOUT_SPLITTER_API_BASE)
# before any project logger is configured, and stripped from argv so Qt never
# sees them.


def _apply_cli_env_options(argv: list[str]) -> list[str]:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--log-level")
    parser.add_argument("--log-cats")
    parser.add_argument("--api-base")
    args, remaining = parser.parse_known_args(argv)
    if args.log_level:
        os.environ["LAYOUT_SPLITTER_LOG_LEVEL"] = args.log_level
    if args.log_cats:
        os.environ["LAYOUT_SPLITTER_LOG_CATS"] = args.log_cats
    if args.api_base:
        os.environ["LAYOUT_SPLITTER_API_BASE"] = args.api_base
    return remaining


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="layout-splitter", description="Edit layout section boundaries and generate crops")
    parser.add_argument("--settings", help="Path to settings.json")
    parser.add_argument("--log-level", help="Set log level (debug|info|warning|error|critical)")
    parser.add_argument("--log-cats", help="Comma-separated log categories")
    parser.add_argument("--api-base", help="Override the API base URL")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--split-id", help="Design split to edit")
    target.add_argument("--upload-id", help="Design upload; its newest split is used")
    parser.add_argument("--image", help="Local copy of the layout image")
    parser.add_argument("--headless", action="store_true", help="Generate crops without a window and print JSON")
    parser.add_argument("--container-width", type=float, default=1280.0)
    parser.add_argument("--viewport-height", type=float, default=900.0)
    return parser


def _make_session(settings):
    from layout_splitter.api.client import SplitApiClient
    from layout_splitter.app.session import SplitSession

    client = SplitApiClient(settings.api_base_url, timeout=settings.request_timeout_s)
    return SplitSession(client, settings=settings)


def run_headless(args: argparse.Namespace, settings) -> int:
    """Load -> derive -> crops -> guard -> gallery, printed as JSON. Exit 1 if the split is unavailable."""
    from PySide6.QtCore import QCoreApplication
    from PySide6.QtGui import QImageReader

    from layout_splitter.app.state.editor_state import EditorState
    from layout_splitter.errors import ApiError

    logger = get_logger("main")
    # Image format plugins need an application instance.
    _app = QCoreApplication.instance() or QCoreApplication([sys.argv[0]])

    session = _make_session(settings)
    try:
        split_id = args.split_id or session.resolve_split_id(args.upload_id)
        if not split_id:
            logger.error("no split found for upload %s", args.upload_id)
            return 1
        try:
            loaded = session.fetch_split(split_id)
        except ApiError as e:
            logger.error("could not load split %s: %s", split_id, e)
            return 1

        state = EditorState(
            container_padding=float(settings.get("container_padding")),
            max_display_height=float(settings.get("max_display_height")),
            viewport_height_ratio=float(settings.get("viewport_height_ratio")),
            min_size=settings.min_display_size,
        )
        state.set_width_preset(str(settings.get("width_preset") or "fit"))
        state.load_suggestions(loaded.summary.sections)
        if args.image:
            state.set_container(args.container_width, args.viewport_height)
            size = QImageReader(args.image).size()
            state.set_image(args.image, size.width(), size.height())
            if state.errorMessage:
                logger.warning("%s; cropping the suggested sections as-is", state.errorMessage)

        result = session.run_pipeline(split_id, state.committed_sections())
        payload = result.to_dict()
        payload["metrics"] = metrics.counters()
        print(json.dumps(payload, indent=2))
        return 0
    finally:
        session.close()


def run(argv: list[str] | None = None) -> int:
    """Application entrypoint (packaging-friendly)."""
    if argv is None:
        argv = sys.argv
    argv = [argv[0], *_apply_cli_env_options(argv[1:])]
    args = build_parser().parse_args(argv[1:])

    from layout_splitter.settings_manager import DEFAULT_SETTINGS_PATH, SettingsManager

    settings = SettingsManager(args.settings or DEFAULT_SETTINGS_PATH)
    logger = get_logger("main")
    logger.debug("api base: %s", settings.api_base_url)

    if args.headless:
        return run_headless(args, settings)

    from PySide6.QtWidgets import QApplication

    from layout_splitter.ui.editor_window import EditorWindow

    app = QApplication(argv[:1])
    window = EditorWindow(_make_session(settings), settings)
    window.resize(int(args.container_width), int(args.viewport_height))
    if args.image and not window.open_image(args.image):
        logger.warning("could not read %s", args.image)
    if args.split_id:
        window.load_split(args.split_id)
    else:
        window.load_upload(args.upload_id)
    window.show()
    return app.exec()


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()

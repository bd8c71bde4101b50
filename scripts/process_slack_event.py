"""Entry point that runs the template pipeline for one Slack message event."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys

from dotenv import load_dotenv

# Ensure project root is on sys.path when running as a script
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from themer_bot.config import Settings
from themer_bot.delivery_log import DeliveryLog
from themer_bot.downloader import Downloader
from themer_bot.message_handler import AttachmentMessageHandler
from themer_bot.models import MessageEvent
from themer_bot.pipeline import AttachmentPipeline
from themer_bot.slack_client import SlackClient
from themer_bot.staging import StagingAreaManager
from themer_bot.transform import TransformInvoker
from themer_bot.uploader import Uploader
from themer_bot.validator import AttachmentValidator

load_dotenv()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compile template archives attached to a Slack message and post the result."
    )
    parser.add_argument(
        "--event",
        default="-",
        help="Path to a Slack event JSON payload ('-' reads stdin)",
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Only validate the attachments; nothing is downloaded"
    )
    return parser


def load_event(source: str) -> dict:
    try:
        if source == "-":
            return json.load(sys.stdin)
        return json.loads(Path(source).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Unable to read event payload from {source}: {exc}") from exc


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def build_pipeline(settings: Settings, slack_client: SlackClient) -> AttachmentPipeline:
    delivery_log = DeliveryLog(settings.delivery_log_db) if settings.delivery_log_db else None
    return AttachmentPipeline(
        validator=AttachmentValidator(settings.supported_kinds),
        downloader=Downloader(
            slack_client,
            temp_dir=settings.staging_dir,
            chunk_size=settings.download_chunk_size,
        ),
        staging=StagingAreaManager(settings.staging_dir, result_filename=settings.result_filename),
        transform=TransformInvoker(settings.transform_argv, timeout=settings.transform_timeout),
        uploader=Uploader(slack_client),
        delivery_log=delivery_log,
    )


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()

    settings = Settings()
    configure_logging(settings.log_level)
    payload = load_event(args.event)

    if args.dry_run:
        message = MessageEvent.from_payload(payload)
        invalid = AttachmentValidator(settings.supported_kinds).first_invalid(message.files)
        if invalid is not None:
            logging.error("%s", invalid[1])
            return 1
        logging.info("[DRY-RUN] Would process %s attachment(s)", len(message.files))
        return 0

    slack_client = SlackClient.from_settings(settings)
    handler = AttachmentMessageHandler(
        build_pipeline(settings, slack_client),
        slack_client,
        report_failures=settings.report_failures,
    )
    error = handler.handle(payload)
    if error is not None:
        logging.error("Run failed: %s", error)
        return 1
    logging.info("Run complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())

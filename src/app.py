"""Application entry point for the notishield filter."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
import time
from contextlib import AsyncExitStack
from logging.handlers import RotatingFileHandler
from typing import Optional, TextIO

from art import text2art
from dotenv import load_dotenv

import settings
from adapters.event_mapper import aiter_events, event_from_payload, verdict_to_payload
from adapters.log_notifier import LoggingRescueNotifier
from adapters.openai_backend import OpenAIChatBackend
from adapters.significant_senders import StaticSignificantSenders
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_bot_notifier import TelegramBotNotifier
from adapters.telegram_notifier import TelegramSavedMessagesNotifier
from core.categories import TAG_FAMILIES, ShieldLevel, parse_tags
from core.classifier import RemoteClassifier
from core.config import ClassifierConfig, ShieldConfig
from core.decision_cache import DecisionCache
from core.dispatcher import EventDispatcher
from core.errors import ConfigurationError
from core.evaluator import ShieldEvaluator
from core.matcher import split_keywords
from core.models import Event, Rule, Verdict
from core.ports import RescuePort
from core.processor import NotificationProcessor

NAME = "NOTISHIELD"
FONT = "tarty-1"
DAY_MS = 24 * 60 * 60 * 1000

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    # Banner goes to stderr so `run` keeps stdout clean for JSON lines.
    print(text2art(NAME, font=FONT, space=1), file=sys.stderr)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = [os.getenv(name) for name in redact_cfg.get("patterns", [])]
    return sorted({value for value in values if value}, key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    formatter = _RedactingFormatter(
        _collect_redaction_values(config),
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        # stderr, since stdout carries verdicts.
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/notishield.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
            backupCount=int(file_cfg.get("backup_count", 5)),
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _shield_config() -> ShieldConfig:
    return ShieldConfig(
        profile_id=settings.PROFILE_ID,
        cache_capacity=settings.CACHE_CAPACITY,
        self_source=settings.SELF_SOURCE,
        default_shield_level=ShieldLevel.parse(settings.DEFAULT_SHIELD_LEVEL, ShieldLevel.SMART),
    )


def _default_level() -> ShieldLevel:
    return _shield_config().default_shield_level


def _open_storage() -> SQLiteStorage:
    storage = SQLiteStorage(settings.DB_PATH, default_shield_level=_default_level())
    storage.init_db()
    return storage


def _build_classifier() -> tuple[RemoteClassifier, Optional[OpenAIChatBackend]]:
    load_dotenv()
    config = ClassifierConfig(
        timeout_seconds=settings.CLASSIFIER_TIMEOUT_SECONDS,
        summary_timeout_seconds=settings.SUMMARY_TIMEOUT_SECONDS,
        max_tokens=settings.CLASSIFIER_MAX_TOKENS,
        summary_max_tokens=settings.SUMMARY_MAX_TOKENS,
        summary_max_items=settings.SUMMARY_MAX_ITEMS,
        default_category=settings.DEFAULT_CATEGORY,
    )
    backend: Optional[OpenAIChatBackend] = None
    api_key = os.getenv("OPENAI_API_KEY")
    if settings.CLASSIFIER_ENABLED and api_key:
        backend = OpenAIChatBackend(
            api_key=api_key,
            model=settings.CLASSIFIER_MODEL,
            base_url=settings.CLASSIFIER_BASE_URL,
            timeout_seconds=max(config.timeout_seconds, config.summary_timeout_seconds),
        )
    elif settings.CLASSIFIER_ENABLED:
        LOGGER.warning("OPENAI_API_KEY is not set, unresolved events use the default category")
    return RemoteClassifier(backend, config), backend


async def _build_rescue(stack: AsyncExitStack) -> RescuePort:
    """Select the rescue adapter based on configuration."""

    method = settings.RESCUE_METHOD
    if method == "log":
        return LoggingRescueNotifier(settings.SOURCE_ALIASES)
    if method == "bot":
        load_dotenv()
        bot_token = os.getenv("BOT_API")
        if not bot_token:
            raise ConfigurationError("BOT_API is required when rescue.method=bot")
        if not settings.BOT_CHAT_ID:
            raise ConfigurationError("rescue.bot_chat_id is required for bot rescue alerts")
        return TelegramBotNotifier(
            bot_token=bot_token,
            chat_id=str(settings.BOT_CHAT_ID),
            source_aliases=settings.SOURCE_ALIASES,
        )
    if method == "saved_messages":
        from client import build_client
        from telegram_login import authorize

        client = build_client()
        await client.connect()
        stack.push_async_callback(client.disconnect)
        await authorize(client)
        return TelegramSavedMessagesNotifier(client, settings.SOURCE_ALIASES)
    raise ConfigurationError("rescue.method must be 'log', 'bot' or 'saved_messages'")


async def _build_processor(stack: AsyncExitStack, storage: SQLiteStorage) -> NotificationProcessor:
    classifier, backend = _build_classifier()
    if backend is not None:
        stack.push_async_callback(backend.close)
    config = _shield_config()
    evaluator = ShieldEvaluator(classifier, DecisionCache(config.cache_capacity))
    return NotificationProcessor(
        evaluator=evaluator,
        rules=storage,
        events=storage,
        rescue=await _build_rescue(stack),
        config=config,
        significant_senders=StaticSignificantSenders(settings.SIGNIFICANT_SENDERS),
    )


def _emit(event: Event, verdict: Verdict) -> None:
    print(json.dumps(verdict_to_payload(event, verdict)), flush=True)


async def _run_stream(stream: TextIO) -> int:
    storage = _open_storage()
    async with AsyncExitStack() as stack:
        processor = await _build_processor(stack, storage)
        dispatcher = EventDispatcher(
            processor,
            max_in_flight=settings.MAX_IN_FLIGHT,
            serialize_per_source=settings.SERIALIZE_PER_SOURCE,
        )
        processed = await dispatcher.run(aiter_events(stream), on_verdict=_emit)
    LOGGER.info("Processed %s events", processed)
    return processed


def _run(args: argparse.Namespace) -> None:
    _print_banner()
    LOGGER.info("Starting notishield (profile %s)", settings.PROFILE_ID)
    if args.events == "-":
        asyncio.run(_run_stream(sys.stdin))
        return
    with open(args.events, "r", encoding="utf-8") as handle:
        asyncio.run(_run_stream(handle))


async def _check_once(event: Event) -> Verdict:
    storage = _open_storage()
    async with AsyncExitStack() as stack:
        processor = await _build_processor(stack, storage)
        return await processor.handle(event)


def _check(args: argparse.Namespace) -> None:
    event = event_from_payload(
        {
            "source": args.source,
            "title": args.title,
            "body": args.body,
            "isGroupDigest": args.group_digest,
            "isConversation": args.conversation,
            "isGroupConversation": args.group_conversation,
        }
    )
    _emit(event, asyncio.run(_check_once(event)))


def _format_rule(rule: Rule) -> str:
    tags = ", ".join(sorted(tag.value for tag in rule.active_tags)) or "-"
    keywords = ", ".join(rule.custom_keywords) or "-"
    return f"{rule.source} | {rule.shield_level.value} | tags: {tags} | keywords: {keywords}"


def _rules(args: argparse.Namespace) -> None:
    storage = _open_storage()
    profile = args.profile or settings.PROFILE_ID

    if args.rules_command == "set":
        existing = storage.get_rule(args.source, profile)
        level = (
            ShieldLevel.parse(args.level, _default_level())
            if args.level
            else (existing.shield_level if existing else _default_level())
        )
        tags = parse_tags(args.tags.split(",")) if args.tags is not None else (
            existing.active_tags if existing else frozenset()
        )
        keywords = tuple(split_keywords(args.keywords)) if args.keywords is not None else (
            existing.custom_keywords if existing else ()
        )
        rule = Rule(
            source=args.source,
            profile_id=profile,
            shield_level=level,
            active_tags=tags,
            custom_keywords=keywords,
            last_updated=int(time.time() * 1000),
        )
        storage.upsert_rule(rule)
        print(_format_rule(rule))
        return

    if args.rules_command == "remove":
        storage.delete_rule(args.source, profile)
        print(f"Removed rule for {args.source} in {profile}")
        return

    if args.rules_command == "tags":
        for family, tags in TAG_FAMILIES:
            print(f"{family}: {', '.join(tag.value for tag in tags)}")
        return

    rules = storage.list_rules(profile)
    if not rules:
        print(f"No rules in profile {profile}. Unconfigured sources pass through.")
        return
    for rule in rules:
        print(_format_rule(rule))


def _blocked(args: argparse.Namespace) -> None:
    storage = _open_storage()
    if args.blocked_command == "clear":
        removed = storage.clear(args.source)
        print(f"Removed {removed} blocked notifications")
        return
    for record in storage.list_blocked(args.source):
        print(f"{record.timestamp} | {record.source} | {record.category} | {record.title}: {record.body}")


async def _summarize_sources(storage: SQLiteStorage, sources: list[str]) -> list[tuple[str, int, str]]:
    classifier, backend = _build_classifier()
    try:
        digests = []
        for source in sources:
            # Oldest first so the cap keeps the newest items.
            records = list(reversed(storage.list_blocked(source)))
            items = [f"{record.title}: {record.body}" for record in records]
            digests.append((source, len(records), await classifier.summarize(source, items)))
        return digests
    finally:
        if backend is not None:
            await backend.close()


def _digest(args: argparse.Namespace) -> None:
    storage = _open_storage()
    sources = [args.source] if args.source else storage.list_sources_with_records()
    if not sources:
        print("Nothing blocked yet.")
        return
    for source, count, summary in asyncio.run(_summarize_sources(storage, sources)):
        print(f"{source} ({count}):\n{summary}\n")


def _prune(args: argparse.Namespace) -> None:
    storage = _open_storage()
    days = args.days if args.days is not None else settings.BLOCKED_RETENTION_DAYS
    cutoff = int(time.time() * 1000) - days * DAY_MS
    removed = storage.delete_older_than(cutoff)
    LOGGER.info("Prune removed %s blocked notifications older than %s days", removed, days)
    print(f"Removed {removed} blocked notifications older than {days} days")


def _login(_: argparse.Namespace) -> None:
    _print_banner()
    from client import build_client
    from telegram_login import authorize

    async def _run_login() -> None:
        client = build_client()
        await client.connect()
        try:
            await authorize(client)
            me = await client.get_me()
            print(f"Logged in as {getattr(me, 'first_name', None) or me.id}")
        finally:
            await client.disconnect()

    asyncio.run(_run_login())


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="notishield")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Filter a JSON-lines event stream")
    run_parser.add_argument("--events", default="-", help="JSON-lines file, '-' for stdin")

    check_parser = subparsers.add_parser("check", help="Evaluate a single notification")
    check_parser.add_argument("source")
    check_parser.add_argument("title")
    check_parser.add_argument("body", nargs="?", default="")
    check_parser.add_argument("--group-digest", action="store_true")
    check_parser.add_argument("--conversation", action="store_true")
    check_parser.add_argument("--group-conversation", action="store_true")

    rules_parser = subparsers.add_parser("rules", help="Manage per-source shield rules")
    rules_parser.add_argument("--profile", default=None)
    rules_sub = rules_parser.add_subparsers(dest="rules_command")
    rules_sub.add_parser("list", help="List rules in the profile")
    rules_sub.add_parser("tags", help="List category tags by family")
    set_parser = rules_sub.add_parser("set", help="Create or update a rule")
    set_parser.add_argument("source")
    set_parser.add_argument("--level", choices=[level.value for level in ShieldLevel])
    set_parser.add_argument("--tags", help="Comma-separated category tags")
    set_parser.add_argument("--keywords", help="Comma-separated always-allow keywords")
    remove_parser = rules_sub.add_parser("remove", help="Delete a rule")
    remove_parser.add_argument("source")

    blocked_parser = subparsers.add_parser("blocked", help="Inspect blocked notifications")
    blocked_sub = blocked_parser.add_subparsers(dest="blocked_command")
    list_blocked = blocked_sub.add_parser("list")
    list_blocked.add_argument("--source", default=None)
    clear_blocked = blocked_sub.add_parser("clear")
    clear_blocked.add_argument("--source", default=None)

    digest_parser = subparsers.add_parser("digest", help="Summarize blocked notifications")
    digest_parser.add_argument("--source", default=None)

    prune_parser = subparsers.add_parser("prune", help="Delete old blocked notifications")
    prune_parser.add_argument("--days", type=int, default=None)

    subparsers.add_parser("login", help="Authorize Telegram for Saved Messages rescue alerts")
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    args = _build_parser().parse_args(argv)
    _configure_logging()

    try:
        if args.command == "check":
            _check(args)
        elif args.command == "rules":
            _rules(args)
        elif args.command == "blocked":
            _blocked(args)
        elif args.command == "digest":
            _digest(args)
        elif args.command == "prune":
            _prune(args)
        elif args.command == "login":
            _login(args)
        else:
            if args.command is None:
                args.events = "-"
            _run(args)
    except ConfigurationError as exc:
        LOGGER.error("%s", exc)
        raise SystemExit(2) from exc


if __name__ == "__main__":
    main()

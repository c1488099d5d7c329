"""
CLI Runner for the Turn Processor
Command-line tool to drive the engine with scripted or single conversations.
"""
import asyncio
import sys
import uuid
from dotenv import load_dotenv
from loguru import logger
from support_engine.core.turn_processor import TurnProcessor, TurnResult
from support_engine.utils.observability import configure_logging

DEMO_SCRIPTS = {
    "marketing": [
        "ECサイトの集客について相談したいです",
        "アパレルのECサイトを運営しています。売上が伸び悩んでいて困っています",
        "月額50万円の予算でSEO対策を検討しています",
        "ShopifyとGoogle Analyticsを使っています",
    ],
    "tech": [
        "APIの連携でエラーが出ています",
        "決済APIでタイムアウトエラーが発生します。昨日から何度も同じ状況です",
        "まだ解決しません。もう限界です",
    ],
    "urgent": [
        "至急対応お願いします。システム全体がダウンしています",
    ],
}


def _print_result(result: TurnResult) -> None:
    print(f"\n📊 Category: {result.category}  |  completion: {result.completion_rate}%")
    if result.collected_fields:
        print("📋 Collected fields:")
        for name, value in result.collected_fields.items():
            print(f"   {name}: {value}")

    if result.sentiment:
        print(f"💭 Sentiment: {result.sentiment.overall_sentiment} "
              f"(blended {result.sentiment.blended_score:.2f}, trend {result.sentiment.trend.dominant})")
    if result.needs:
        top = result.needs[0]
        print(f"🔎 Top need: {top.suggestion} [{top.priority_level}, {top.priority_score:.0f}]")
    if result.keywords:
        print(f"🏷️  Keywords: {', '.join(result.keywords)}")

    print(f"\n💬 Reply:\n   {result.reply}")

    decision = result.escalation
    if decision.required:
        print(f"\n🚨 ESCALATED {decision.escalation_id} → {decision.channel} ({decision.priority})")
        for reason in decision.reasons:
            print(f"   - {reason}")
        for warning in decision.warnings:
            print(f"   ⚠️ {warning}")
    elif decision.already_escalated:
        print("\nℹ️  Already escalated, no further action")

    print(f"⚡ Duration: {result.total_duration_ms:.0f}ms")


async def run_conversation(script: str = "marketing", use_mongo: bool = False):
    """
    Run a scripted conversation through the processor.
    Stops as soon as the engine says not to continue.
    """
    configure_logging()

    messages = DEMO_SCRIPTS[script]
    conversation_id = f"demo-{script}-{uuid.uuid4().hex[:8]}"

    logger.info("=" * 70)
    logger.info(f"🤖 Support Engine - {script} demo ({conversation_id})")
    logger.info("=" * 70)

    processor = TurnProcessor()

    try:
        if use_mongo:
            await processor.initialize()

        for i, message in enumerate(messages, 1):
            print(f"\n{'─' * 70}")
            print(f"🗣️  USER ({i}/{len(messages)}): {message}")
            print(f"{'─' * 70}")

            result = await processor.process_turn(conversation_id, "user", message)
            _print_result(result)

            if result.next_question:
                await processor.process_turn(conversation_id, "assistant", result.reply)

            if not result.continue_conversation:
                break

        print(f"\n✅ Demo complete: {conversation_id}\n")

    finally:
        if use_mongo:
            await processor.shutdown()


async def run_single_message(message: str):
    """Run a single message through a fresh conversation."""
    configure_logging()

    processor = TurnProcessor()
    result = await processor.process_turn(f"cli-{uuid.uuid4().hex[:8]}", "user", message)
    _print_result(result)


def main() -> None:
    """
    Entry point.

    Usage:
        support-engine-demo [marketing|tech|urgent] [--mongo]
        support-engine-demo single "<message>"
    """
    # Provider SDKs (pydantic-ai) read credentials from the process environment
    load_dotenv()
    args = sys.argv[1:]

    if args and args[0] == "single":
        message = " ".join(args[1:]) or "月額200万円の予算でSEO対策を検討しています"
        asyncio.run(run_single_message(message))
        return

    use_mongo = "--mongo" in args
    scripts = [a for a in args if a in DEMO_SCRIPTS]
    asyncio.run(run_conversation(scripts[0] if scripts else "marketing", use_mongo=use_mongo))


if __name__ == "__main__":
    main()

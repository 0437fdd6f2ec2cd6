#!/usr/bin/env python3
"""Voice/SMS Agent console transport."""

import argparse
import asyncio
import json
import logging
import sys

from config.settings import Settings
from engine.conversation import Conversation
from orchestrator import AgentOrchestrator


def attach_console(conversation: Conversation) -> None:
    """Print streamed text and control events to stdout."""

    def on_text(chunk: str, is_final: bool, full_text=None):
        if is_final:
            print(flush=True)
        else:
            print(chunk, end="", flush=True)

    def on_handoff(payload):
        print(f"\n[handoff] {json.dumps(payload, default=str)}", flush=True)

    def on_language(payload):
        print(
            f"\n[language] tts={payload.get('ttsLanguage')} "
            f"transcription={payload.get('transcriptionLanguage')}",
            flush=True
        )

    conversation.on_text(on_text)
    conversation.on_handoff(on_handoff)
    conversation.on_language(on_language)


async def run_console(args: argparse.Namespace, settings: Settings) -> None:
    orchestrator = AgentOrchestrator(settings=settings, on_conversation=attach_console)
    orchestrator.start()

    try:
        if args.voice:
            await orchestrator.start_voice_call(
                from_number=args.number,
                to_number=args.agent_number,
                instructions=args.instructions,
                call_sid=args.call_sid
            )

        while True:
            line = await asyncio.to_thread(sys.stdin.readline)
            if not line:
                break
            text = line.strip()
            if not text:
                continue
            if text in ("/quit", "/exit"):
                break
            if text == "/stats":
                print(json.dumps(orchestrator.stats(), indent=2))
                continue

            if args.voice:
                if text.startswith("/dtmf "):
                    handled = await orchestrator.handle_dtmf(args.number, text.split(" ", 1)[1])
                else:
                    handled = await orchestrator.handle_voice_prompt(args.number, text)
                if not handled:
                    print("Call has ended.", file=sys.stderr)
                    break
            else:
                await orchestrator.handle_sms(args.number, args.agent_number, text)
    finally:
        await orchestrator.stop()


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Voice/SMS Agent - chat with the streaming conversation engine from a terminal"
    )
    parser.add_argument(
        "--provider",
        type=str,
        choices=["openai", "anthropic"],
        help="LLM provider (default: LLM_PROVIDER or openai)"
    )
    parser.add_argument(
        "--model",
        type=str,
        help="Model override"
    )
    parser.add_argument(
        "--number",
        "-n",
        type=str,
        default="+15555550100",
        help="Customer phone number used as the conversation key"
    )
    parser.add_argument(
        "--agent-number",
        type=str,
        default="+15555550199",
        help="Agent phone number"
    )
    parser.add_argument(
        "--voice",
        action="store_true",
        help="Simulate a voice call instead of an SMS thread"
    )
    parser.add_argument(
        "--call-sid",
        type=str,
        help="Call SID for live agent transfer in voice mode"
    )
    parser.add_argument(
        "--instructions",
        "-i",
        type=str,
        help="System prompt for voice calls"
    )
    parser.add_argument(
        "--webhook-url",
        type=str,
        help="Webhook URL for conversation notifications"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    settings = Settings(
        llm_provider=args.provider,
        llm_model=args.model,
        webhook_url=args.webhook_url,
        verbose=args.verbose,
    )

    try:
        asyncio.run(run_console(args, settings))
    except KeyboardInterrupt:
        pass
    except Exception as e:
        print(f"Error running agent: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""Play a Decrypto duel against an AI team in the terminal."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).parent.parent / ".env")

from src.core.providers import provider_ids
from src.duel.config import AIConfig, build_runner
from src.duel.models import DuelConfig, GameState, Phase
from src.duel.parsing import format_code, parse_code_input
from src.duel.session import DuelSession
from src.duel.views import build_clue_history_table


class Colors:
    BLUE = "\033[94m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    GRAY = "\033[90m"
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RESET = "\033[0m"


def print_scores(state: GameState) -> None:
    h, a = state.human_team, state.ai_team
    print(
        f"{Colors.BOLD}Round {state.round}/{state.max_rounds}{Colors.RESET}  "
        f"{Colors.BLUE}You: {h.intercept_count} intercepts, {h.miscommunication_count} miscommunications{Colors.RESET}  "
        f"{Colors.RED}AI: {a.intercept_count} intercepts, {a.miscommunication_count} miscommunications{Colors.RESET}"
    )


def ask_code(prompt: str) -> tuple[int, int, int]:
    while True:
        code = parse_code_input(input(prompt))
        if code is not None:
            return code
        print(f"{Colors.YELLOW}  Enter 3 different digits from 1-4, e.g. 3 1 4{Colors.RESET}")


def print_new_logs(state: GameState, show_logs: bool, seen: int) -> int:
    logs = state.ai_thinking_logs
    if show_logs:
        for log in logs[seen:]:
            print(f"{Colors.CYAN}  [{log.role}] {log.output}{Colors.RESET}")
    return len(logs)


async def main() -> None:
    parser = argparse.ArgumentParser(description="Play a Decrypto duel against an AI team")
    parser.add_argument("--provider", choices=provider_ids(), help="Overrides DECRYPTO_PROVIDER")
    parser.add_argument("--model", help="Overrides DECRYPTO_MODEL")
    parser.add_argument("--thinking", action="store_true", help="Use the provider's thinking model")
    parser.add_argument("--max-rounds", type=int, default=8)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--show-logs", action="store_true", help="Print AI model output")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ai_config = AIConfig.from_env()
    overrides: dict[str, object] = {}
    if args.provider:
        overrides["provider_id"] = args.provider
    if args.model:
        overrides["model"] = args.model
    if args.thinking:
        overrides["use_thinking"] = True
    if overrides:
        ai_config = ai_config.model_copy(update=overrides)

    session = DuelSession(DuelConfig(max_rounds=args.max_rounds, seed=args.seed))
    runner = build_runner(session, ai_config)

    result = session.start_game()
    if not result.ok:
        print(f"{Colors.RED}Could not start game: {result.error}{Colors.RESET}")
        return

    seen_logs = 0
    while session.phase != Phase.GAME_OVER:
        state = session.state
        if state.phase == Phase.HUMAN_ENCRYPT:
            seen_logs = 0
            print()
            print_scores(state)
            print(f"{Colors.BLUE}Your keywords:{Colors.RESET}")
            for i, w in enumerate(state.human_team.keywords, start=1):
                print(f"  {i}. {w}")
            print(f"{Colors.DIM}Your past clues:\n{build_clue_history_table(state.history, 'human')}{Colors.RESET}")
            print(f"{Colors.BOLD}Secret code: {format_code(state.current_human_code)}{Colors.RESET}")
            clues = [input(f"  Clue for position {i}: ") for i in range(1, 4)]
            result = session.submit_human_clues(clues)
            if not result.ok:
                print(f"{Colors.YELLOW}  {result.error}{Colors.RESET}")
            else:
                # Encryptor and receiver share a terminal; hide the code.
                print("\n" * 40)
        elif state.phase == Phase.HUMAN_GUESS:
            print(f"Clues: {', '.join(state.current_human_clues)}")
            result = session.submit_human_guess(ask_code("  Receiver, decode the code: "))
            print(f"  {'Correct!' if result.correct else 'Miscommunication.'}")
        elif state.phase == Phase.AI_INTERCEPT:
            print(f"{Colors.GRAY}  AI is trying to intercept...{Colors.RESET}")
            await runner.run_ai_intercept()
        elif state.phase == Phase.HUMAN_PHASE_RESULT:
            seen_logs = print_new_logs(state, args.show_logs, seen_logs)
            print(
                f"  Your code was {format_code(state.current_human_code)}; "
                f"AI intercept guess {format_code(state.current_ai_intercept_guess)}"
            )
            input(f"{Colors.DIM}  Press Enter to continue{Colors.RESET}")
            session.finish_human_phase()
        elif state.phase == Phase.AI_ENCRYPT:
            print(f"{Colors.GRAY}  AI is encrypting...{Colors.RESET}")
            await runner.run_ai_encrypt()
        elif state.phase == Phase.AI_GUESS:
            await runner.run_ai_guess()
        elif state.phase == Phase.HUMAN_INTERCEPT:
            seen_logs = print_new_logs(state, args.show_logs, seen_logs)
            print(f"{Colors.DIM}AI past clues:\n{build_clue_history_table(state.history, 'ai')}{Colors.RESET}")
            print(f"{Colors.RED}AI clues: {', '.join(state.current_ai_clues)}{Colors.RESET}")
            result = session.submit_human_intercept(ask_code("  Intercept the AI code: "))
            print(f"  {'Intercepted!' if result.correct else 'Missed.'}")
        elif state.phase == Phase.AI_PHASE_RESULT:
            print(
                f"  AI code was {format_code(state.current_ai_code)}; "
                f"AI receiver guessed {format_code(state.current_ai_team_guess)}"
            )
            session.finish_ai_phase()
        elif state.phase == Phase.ROUND_END:
            session.advance_to_next_round()

    final = session.state
    print()
    print_scores(final)
    print(f"{Colors.GREEN}{Colors.BOLD}Winner: {final.winner.upper()}{Colors.RESET} ({final.end_reason})")
    print(f"  Your keywords: {', '.join(final.human_team.keywords)}")
    print(f"  AI keywords:   {', '.join(final.ai_team.keywords)}")


if __name__ == "__main__":
    asyncio.run(main())

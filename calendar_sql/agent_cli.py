"""
Calendar SQL Chat Interface

Interactive terminal chat over the in-memory calendar database.
Ask questions in natural language; every turn shows the generated SQL,
the raw rows and a friendly summary.
"""

import argparse
import logging
import random
import time
from typing import Dict, Optional

import readline  # noqa: F401  (line editing for input())

from .agent import QueryAgent
from .config import Settings
from .conversation import Conversation, Message, Sender, TurnState, is_error_text
from .database import TABLES, SessionStore
from .prompts import Strategy


class ChatSession:
    """
    Interactive chat session around a Conversation.

    Handles chat commands, prints messages as the conversation appends
    them, and keeps simple session statistics.
    """

    def __init__(self, conversation: Conversation, debug: bool = False):
        self.conversation = conversation
        self.debug = debug
        self.session_stats = {
            "questions_asked": 0,
            "outcomes": {state: 0 for state in TurnState},
            "avg_response_time": 0.0,
        }
        conversation.listeners.append(self._print_message)

    def start_chat(self):
        """Start the interactive chat session"""
        print("🤖 Calendar SQL Chat")
        print("=" * 25)
        print("Type 'help' for commands or 'quit' to exit.\n")

        self._show_database_info()
        for message in self.conversation.messages:
            self._print_message(message)

        while True:
            try:
                user_input = input("\n💬 Your question: ").strip()

                if not user_input:
                    continue
                if not self.handle_command(user_input):
                    break

            except (KeyboardInterrupt, EOFError):
                print("\n\n👋 Goodbye!")
                self._show_session_stats()
                break
            except Exception as e:
                print(f"\n❌ Unexpected error: {e}")
                if self.debug:
                    import traceback
                    traceback.print_exc()

    def handle_command(self, user_input: str) -> bool:
        """
        Dispatch one line of input.

        Returns:
            False when the session should end
        """
        command, _, argument = user_input.partition(" ")
        command = command.lower()

        if command in ("quit", "exit", "q"):
            self._show_session_stats()
            return False
        elif command == "help":
            self._show_help()
        elif command == "history":
            self._show_history()
        elif command == "stats":
            self._show_session_stats()
        elif command == "strategy":
            self._change_strategy(argument.strip())
        elif command == "events":
            self._show_table("event")
        elif command == "tables":
            for table_name in TABLES:
                self._show_table(table_name)
        elif command == "debug":
            self.debug = not self.debug
            logging.getLogger().setLevel(logging.DEBUG if self.debug else logging.WARNING)
            print(f"🔧 Debug mode: {'ON' if self.debug else 'OFF'}")
        else:
            self._process_question(user_input)
        return True

    def _process_question(self, question: str):
        """Run a single question through the conversation"""
        start_time = time.time()
        print(f"\n🔄 Processing your question ({self.conversation.strategy.value})...")

        outcome = self.conversation.submit(question)
        processing_time = time.time() - start_time

        stats = self.session_stats
        stats["questions_asked"] += 1
        stats["outcomes"][outcome] += 1
        total_questions = stats["questions_asked"]
        stats["avg_response_time"] = (
            (stats["avg_response_time"] * (total_questions - 1) + processing_time) / total_questions
        )

        if self.debug:
            if outcome in (TurnState.EXECUTION_ERROR, TurnState.EXECUTION_EMPTY):
                print(f"  🔧 SQL: {self.conversation.last_sql}")
            print(f"  ⏱️ {processing_time:.2f}s, outcome: {outcome.value}")

    def _print_message(self, message: Message):
        if message.sender is Sender.USER:
            return
        icon = "❌" if is_error_text(message.text) else "🤖"
        print(f"{icon} {message.text}")

    def _change_strategy(self, name: str):
        if not name:
            choices = ", ".join(s.value for s in Strategy)
            print(f"🧭 Strategy: {self.conversation.strategy.value} (available: {choices})")
            return
        try:
            strategy = self.conversation.set_strategy(name)
        except ValueError as e:
            print(f"⚠️ {e}")
            return
        print(f"🧭 Strategy set to {strategy.value}")

    def _show_table(self, table_name: str):
        df = self.conversation.store.read_table(table_name)
        print(f"\n📋 {table_name} ({len(df)} rows):")
        if df.empty:
            print("  (empty)")
        else:
            print(df.to_string(index=False))

    def _show_database_info(self):
        """Show basic database information"""
        counts = self.conversation.store.get_table_counts()
        if not counts:
            print("⚠️ Database not initialized")
            return
        summary = ", ".join(f"{name} ({count} rows)" for name, count in counts.items())
        print(f"📋 Tables: {summary}")
        print(f"🧭 Strategy: {self.conversation.strategy.value}\n")

    def _show_help(self):
        """Show help information"""
        print("""
🆘 Available Commands:
  • Type any question in natural language
  • 'help' - Show this help
  • 'history' - Show the conversation so far
  • 'strategy [name]' - Show or set the prompt strategy
      (zero-shot, single-domain, cross-domain)
  • 'events' - Show the event table
  • 'tables' - Show every table
  • 'stats' - Show session statistics
  • 'debug' - Toggle debug logging
  • 'quit' - Exit chat

💡 Example Questions:
  • "Show all events for user 3"
  • "Which tasks are not completed yet?"
  • "How many events happened in 2023?"
        """)

    def _show_history(self):
        """Show conversation history"""
        messages = self.conversation.messages
        print(f"📝 Conversation History ({len(messages)} messages):")
        for message in messages:
            who = "🧑" if message.sender is Sender.USER else "🤖"
            text = message.text if len(message.text) <= 80 else message.text[:80] + "..."
            print(f"  {message.id}. {who} {text}")

    def _show_session_stats(self):
        """Show session statistics"""
        stats = self.session_stats
        outcomes: Dict[TurnState, int] = stats["outcomes"]
        answered = outcomes[TurnState.SUMMARY_READY] + outcomes[TurnState.EXECUTION_EMPTY]
        success_rate = (answered / stats["questions_asked"] * 100) if stats["questions_asked"] > 0 else 0

        print(f"\n📊 Session Statistics:")
        print(f"  • Questions asked: {stats['questions_asked']}")
        print(f"  • Answered: {answered} ({success_rate:.1f}%)")
        print(f"  • Queries not generated: {outcomes[TurnState.QUERY_FAILED]}")
        print(f"  • Execution errors: {outcomes[TurnState.EXECUTION_ERROR]}")
        print(f"  • Average response time: {stats['avg_response_time']:.2f}s")
        print(f"  • Messages: {len(self.conversation.messages)}")


def build_conversation(
    settings: Settings,
    strategy: Optional[str] = None,
    seed: Optional[int] = None,
    with_data: bool = True,
) -> Conversation:
    """Create a ready-to-use conversation with a fresh in-memory database"""
    store = SessionStore(read_only=settings.read_only)
    store.initialize(seed=with_data, rng=random.Random(seed))
    return Conversation(QueryAgent(settings), store, strategy=strategy or settings.strategy)


def main(argv=None):
    """Main CLI entry point for the calendar chat"""
    parser = argparse.ArgumentParser(
        description="Calendar SQL Chat Interface",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m calendar_sql.agent_cli
  python -m calendar_sql.agent_cli --strategy zero-shot --seed 42
  python -m calendar_sql.agent_cli --read-only --debug
        """
    )

    parser.add_argument(
        "--strategy",
        choices=[s.value for s in Strategy],
        help="Prompt strategy (default: DEFAULT_STRATEGY or single-domain)"
    )
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Only allow SELECT/WITH statements"
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for the demo data"
    )
    parser.add_argument(
        "--no-data",
        action="store_true",
        help="Create the tables without random data"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = Settings.from_env()
        if args.read_only:
            settings.read_only = True
        conversation = build_conversation(
            settings,
            strategy=args.strategy,
            seed=args.seed,
            with_data=not args.no_data,
        )
    except ValueError as e:
        print(f"❌ Configuration error: {e}")
        return 1

    print("🔧 Database initialized with random data" if not args.no_data else "🔧 Database initialized")
    ChatSession(conversation, debug=args.debug).start_chat()
    conversation.store.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

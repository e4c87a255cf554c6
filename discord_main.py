import logging
import os

from dotenv import load_dotenv

from application.ledger import Ledger
from application.router import CommandRouter
from application.trivia import TriviaSessions
from infrastructure.db.account_repository_sqlite import SqliteAccountRepository
from infrastructure.http.opentdb_client import OpenTriviaClient
from infrastructure.http.quotable_client import QuotableClient
from interfaces.discord.handlers import create_discord_bot


load_dotenv()

DISCORD_TOKEN = os.environ.get("DISCORD_TOKEN")
DB_PATH = os.environ.get("DB_PATH", "economy.db")
BOT_NAME = os.environ.get("BOT_NAME", "mary")
TRIVIA_TIMEOUT = float(os.environ.get("TRIVIA_TIMEOUT", "30"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def main() -> None:
    if not DISCORD_TOKEN:
        raise RuntimeError("DISCORD_TOKEN environment variable is not set.")

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    account_repo = SqliteAccountRepository(DB_PATH)
    sessions = TriviaSessions(timeout=TRIVIA_TIMEOUT)
    quote_client = QuotableClient()
    trivia_client = OpenTriviaClient()
    router = CommandRouter(
        ledger=Ledger(account_repo),
        sessions=sessions,
        quote_provider=quote_client,
        trivia_provider=trivia_client,
        bot_name=BOT_NAME,
    )

    bot = create_discord_bot(router, sessions, resources=(quote_client, trivia_client))
    bot.run(DISCORD_TOKEN, log_handler=None)


if __name__ == "__main__":
    main()

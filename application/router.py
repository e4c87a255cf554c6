from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from application import services
from application.commands import Command, Verb, parse_command
from application.ledger import Ledger
from application.messages import EMBED_FIELD_LIMIT, Embed, MessageContext, Reply
from application.services import ExternalContext, OperationResult
from application.trivia import TriviaSessions, is_correct
from application.wagers import LOTTERY_STAKE, SLOTS_STAKE, trivia_payout
from domain.errors import (
    EconomyError,
    ExternalFetchError,
    InsufficientFunds,
    PermissionDenied,
    ValidationError,
    format_duration,
)
from domain.models import Difficulty, TriviaQuestion
from domain.repositories import QuoteProvider, TriviaProvider

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong while running that command."

DIFFICULTY_COLORS = {
    Difficulty.EASY: 0x2ECC71,
    Difficulty.MEDIUM: 0xF1C40F,
    Difficulty.HARD: 0xE74C3C,
}

# (usage, description) rows of the help embed, in display order.
HELP_ROWS: List[Tuple[str, str]] = [
    ("help", "Shows all commands."),
    ("test", "Tests if Mary is online."),
    ("test connection", "Tests if Mary can connect to the database."),
    ("del [amount] (admin only)", "Deletes a set number of messages."),
    ("bankrupt @user (admin only)", "Reduces the user's balance to 0."),
    ("quote", "Shows a random quote."),
    ("profile [optional: @user]", "Shows your profile or a specified user's profile."),
    ("bal [optional: @user]", "Shows your balance or a specified user's balance."),
    ("daily", "Gives you 100 coins."),
    ("pay/give @user [amount]", "Pays the mentioned user the specified amount of coins."),
    ("top/leaderboard", "Shows the top 10 users with the highest balance."),
    (
        "trivia [optional: amount]",
        "Starts a trivia game. Pays 50, 100, or 200 coins upon win depending on the "
        "difficulty. You can also gamble for 2X, 3X, 5X your bet.",
    ),
    ("gamble [amount]", "Gamble the specified amount of coins."),
    ("lottery [amount]", "Enter the lottery with 100 coins."),
    ("slots [amount]", "Play slots with 10 coins."),
]

Handler = Callable[[MessageContext, Command], Awaitable[None]]


class CommandRouter:
    """
    Turns one chat message into one or more replies.

    Parsing and validation happen once in `parse_command`; each verb then
    has a handler that delegates every balance change to the Ledger (via
    the economy services) or to the trivia sessions. All failures end up
    as a reply on the originating channel.
    """

    def __init__(
        self,
        ledger: Ledger,
        sessions: TriviaSessions,
        quote_provider: QuoteProvider,
        trivia_provider: TriviaProvider,
        bot_name: str = "mary",
        pause: float = 1.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.ledger = ledger
        self.sessions = sessions
        self.quote_provider = quote_provider
        self.trivia_provider = trivia_provider
        self.bot_name = bot_name
        self.pause = pause
        self.rng = rng or random.Random()
        self._handlers: Dict[Verb, Handler] = {
            Verb.TEST: self._test,
            Verb.HELP: self._help,
            Verb.PROFILE: self._profile,
            Verb.DELETE: self._delete,
            Verb.BANKRUPT: self._bankrupt,
            Verb.QUOTE: self._quote,
            Verb.BALANCE: self._balance,
            Verb.DAILY: self._daily,
            Verb.BEG: self._beg,
            Verb.ROB: self._rob,
            Verb.PAY: self._pay,
            Verb.LEADERBOARD: self._leaderboard,
            Verb.TRIVIA: self._trivia,
            Verb.GAMBLE: self._gamble,
            Verb.LOTTERY: self._lottery,
            Verb.SLOTS: self._slots,
            Verb.UNKNOWN: self._unknown,
        }

    async def route(self, ctx: MessageContext) -> bool:
        """Handle a message. Returns False when it was not addressed to the bot."""

        try:
            command = parse_command(ctx.text, self.bot_name)
        except ValidationError as e:
            await self._say(ctx, e.message)
            return True
        if command is None:
            return False

        logger.debug(
            "Dispatching %s (%r) for %s on server %s",
            command.verb.name, command.name, ctx.invoker.user_id, ctx.server_id,
        )
        try:
            await self._handlers[command.verb](ctx, command)
        except EconomyError as e:
            await self._say(ctx, e.message)
        except Exception:
            logger.exception("Command %r failed for %s", command.name, ctx.invoker.user_id)
            try:
                await self._say(ctx, GENERIC_ERROR)
            except Exception:
                logger.exception("Could not report the failure on channel %s", ctx.channel_id)
        return True

    async def _say(self, ctx: MessageContext, text: str) -> None:
        await ctx.channel.send(Reply(text=text))

    async def _report(self, ctx: MessageContext, result: OperationResult) -> None:
        await self._say(ctx, result.text)

    async def _sleep(self, factor: float = 1.0) -> None:
        if self.pause > 0:
            await asyncio.sleep(self.pause * factor)

    def _target(self, ctx: MessageContext, user_id: str) -> ExternalContext:
        mentioned = ctx.find_mention(user_id)
        if mentioned is not None:
            return mentioned
        # Name unknown here; the ledger keeps whatever it already has.
        return ExternalContext(server_id=ctx.server_id, user_id=user_id, display_name="")

    async def _test(self, ctx: MessageContext, command: Command) -> None:
        if not command.probe_connection:
            await self._say(ctx, "Test successful!")
        elif self.ledger.ping():
            await self._say(ctx, "Database connection successful!")
        else:
            await self._say(ctx, "Error connecting to the database!")

    async def _help(self, ctx: MessageContext, command: Command) -> None:
        embed = Embed(title="Mary's Commands", thumbnail_url=ctx.bot_avatar_url)
        for usage, description in HELP_ROWS:
            embed.add_field(f"{self.bot_name} {usage}", description)
        await ctx.channel.send(Reply(embed=embed))

    async def _profile(self, ctx: MessageContext, command: Command) -> None:
        if command.target_id is not None:
            target = self._target(ctx, command.target_id)
        elif ctx.mentions:
            target = ctx.mentions[0]
        else:
            target = ctx.invoker
        is_self = target.user_id == ctx.invoker.user_id

        result = services.get_profile(target, self.ledger)
        if not result.success:
            if is_self:
                await self._say(ctx, "You are not currently playing the game!")
            else:
                await self._say(ctx, result.error_message)
            await self._sleep()
            if is_self:
                await self._say(ctx, "I will add you to the database now...")
            else:
                await self._say(ctx, "I will add that user to the database now...")
            self.ledger.open_account(target.server_id, target.user_id, target.display_name)
            return

        account = result.account
        embed = Embed(title="Profile", thumbnail_url=target.avatar_url)
        embed.add_field("Username", account.display_name, inline=True)
        embed.add_field("Balance", f"{account.balance} coins", inline=True)
        embed.add_field("Server", ctx.server_name, inline=True)
        embed.add_field("Next Daily", format_duration(result.next_daily), inline=True)
        await ctx.channel.send(Reply(embed=embed))

    async def _delete(self, ctx: MessageContext, command: Command) -> None:
        if not ctx.invoker.is_admin:
            raise PermissionDenied()
        deleted = await ctx.channel.delete_messages(command.amount)
        logger.info("%s deleted %d messages in channel %s", ctx.invoker.user_id, deleted, ctx.channel_id)
        await self._say(ctx, f"Deleted {deleted} messages.")

    async def _bankrupt(self, ctx: MessageContext, command: Command) -> None:
        target = self._target(ctx, command.target_id)
        await self._report(ctx, await services.bankrupt(ctx.invoker, target, self.ledger))

    async def _quote(self, ctx: MessageContext, command: Command) -> None:
        try:
            quote = await self.quote_provider.fetch_quote()
        except ExternalFetchError:
            await self._say(ctx, "Error retrieving quote!")
            return
        await self._say(ctx, f"```{quote.content}\n\n- {quote.author}```")

    async def _balance(self, ctx: MessageContext, command: Command) -> None:
        target = self._target(ctx, command.target_id) if command.target_id else None
        await self._report(ctx, services.check_balance(ctx.invoker, self.ledger, target))

    async def _daily(self, ctx: MessageContext, command: Command) -> None:
        await self._report(ctx, await services.claim_daily(ctx.invoker, self.ledger))

    async def _beg(self, ctx: MessageContext, command: Command) -> None:
        await self._report(ctx, await services.beg(ctx.invoker, self.ledger, self.rng))

    async def _rob(self, ctx: MessageContext, command: Command) -> None:
        target = self._target(ctx, command.target_id)
        await self._report(ctx, await services.rob(ctx.invoker, target, self.ledger, self.rng))

    async def _pay(self, ctx: MessageContext, command: Command) -> None:
        target = self._target(ctx, command.target_id)
        await self._report(ctx, await services.pay(ctx.invoker, target, command.amount, self.ledger))

    async def _leaderboard(self, ctx: MessageContext, command: Command) -> None:
        entries = self.ledger.leaderboard(ctx.server_id)
        if not entries:
            await self._say(ctx, "No one on this server is playing yet!")
            return

        # Three fields per entry; split so no embed exceeds the field limit.
        per_embed = EMBED_FIELD_LIMIT // 3
        for start in range(0, len(entries), per_embed):
            embed = Embed(title="Leaderboard", thumbnail_url=ctx.server_icon_url)
            for entry in entries[start:start + per_embed]:
                embed.add_field("Rank", str(entry.rank), inline=True)
                embed.add_field("Name", entry.name, inline=True)
                embed.add_field("Balance", str(entry.balance), inline=True)
            await ctx.channel.send(Reply(embed=embed))

    def _question_embed(self, question: TriviaQuestion) -> Embed:
        embed = Embed(
            title="Trivia",
            color=DIFFICULTY_COLORS[question.difficulty],
            description=question.question,
            footer=f"You have {int(self.sessions.timeout)} seconds to answer.",
        )
        if question.category:
            embed.add_field("Category", question.category, inline=True)
        embed.add_field("Difficulty", question.difficulty.value.capitalize(), inline=True)
        if question.choices:
            embed.add_field("Choices", "\n".join(f"- {choice}" for choice in question.choices))
        return embed

    async def _trivia(self, ctx: MessageContext, command: Command) -> None:
        invoker = ctx.invoker
        stake = command.amount or 0
        pending = self.sessions.start(ctx.channel_id, invoker.user_id, ctx.server_id, stake)

        asked = False
        try:
            if stake > 0:
                await self._say(ctx, f"Gambling {stake} coins. Checking balance...")
                await self._sleep()
                self.ledger.open_account(ctx.server_id, invoker.user_id, invoker.display_name)
                available = self.ledger.balance(ctx.server_id, invoker.user_id)
                if available < stake:
                    raise InsufficientFunds(available, stake)

            try:
                question = await self.trivia_provider.fetch_question()
            except ExternalFetchError as e:
                raise ExternalFetchError("Error retrieving trivia question!") from e

            self.sessions.ask(pending, question)
            await ctx.channel.send(Reply(embed=self._question_embed(question)))
            asked = True
        finally:
            if not asked:
                self.sessions.cancel(pending)

        # TriviaTimeout propagates to `route` and is reported like any other failure.
        answer = await self.sessions.wait_for_answer(pending)
        if is_correct(answer, question.correct_answer):
            await self._say(ctx, "Correct!")
            payout = trivia_payout(question.difficulty, stake)
            self.ledger.open_account(ctx.server_id, invoker.user_id, invoker.display_name)
            balance = await self.ledger.adjust(ctx.server_id, invoker.user_id, payout)
            await self._say(ctx, f"{invoker.mention}, you win {payout} coins! You now have {balance} coins.")
            return

        await self._say(ctx, f"Incorrect! The correct answer is {question.correct_answer}.")
        if stake > 0:
            lost = await self.ledger.debit_up_to(ctx.server_id, invoker.user_id, stake)
            await self._say(ctx, f"{invoker.mention}, you lose. -{lost} coins.")

    async def _gamble(self, ctx: MessageContext, command: Command) -> None:
        await self._say(ctx, f"Gambling {command.amount} coins...")
        await self._sleep()
        await self._report(
            ctx,
            await services.play_gamble(ctx.invoker, command.amount, self.ledger, self.rng),
        )

    async def _lottery(self, ctx: MessageContext, command: Command) -> None:
        if command.extra_args:
            await self._say(ctx, f"You can only spend {LOTTERY_STAKE} coins on the lottery!")
            await self._sleep(0.5)
        await self._say(ctx, f"Gambling {LOTTERY_STAKE} coins...")
        await self._sleep()
        await self._report(ctx, await services.play_lottery(ctx.invoker, self.ledger, self.rng))

    async def _slots(self, ctx: MessageContext, command: Command) -> None:
        if command.extra_args:
            await self._say(ctx, f"You can only spend {SLOTS_STAKE} coins on slots!")
            await self._sleep(0.5)
        await self._say(ctx, f"Gambling {SLOTS_STAKE} coins...")
        await self._sleep()
        await self._report(ctx, await services.play_slots(ctx.invoker, self.ledger, self.rng))

    async def _unknown(self, ctx: MessageContext, command: Command) -> None:
        result = await services.run_unknown_command(command.name, ctx.invoker, self.ledger)
        await self._report(ctx, result)

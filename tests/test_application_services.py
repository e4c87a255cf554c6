import unittest
from datetime import datetime, timedelta, timezone

from application.ledger import Ledger
from application.services import (
    bankrupt,
    beg,
    check_balance,
    claim_daily,
    get_profile,
    pay,
    play_gamble,
    play_lottery,
    play_slots,
    rob,
    run_unknown_command,
)
from domain.errors import ErrorKind
from fakes import SERVER_ID, InMemoryAccountRepository, ScriptedRandom, user


class ApplicationServicesTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.repo = InMemoryAccountRepository()
        self.ledger = Ledger(self.repo)
        self.alice = user("1", "Alice")
        self.bob = user("2", "Bob")

    def balance(self, user_id: str) -> int:
        return self.repo.get_account(SERVER_ID, user_id).balance

    def test_check_balance_creates_account_lazily(self):
        self.assertIsNone(self.repo.get_account(SERVER_ID, "1"))
        result = check_balance(self.alice, self.ledger)
        self.assertTrue(result.success)
        self.assertEqual(result.text, "<@1> has 0 coins.")
        self.assertIsNotNone(self.repo.get_account(SERVER_ID, "1"))

    def test_check_balance_of_mentioned_user(self):
        self.repo.seed("2", 75)
        result = check_balance(self.alice, self.ledger, self.bob)
        self.assertEqual(result.text, "<@2> has 75 coins.")

    async def test_daily_from_zero_then_cooldown(self):
        now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        first = await claim_daily(self.alice, self.ledger, now)
        self.assertTrue(first.success)
        self.assertEqual(self.balance("1"), 100)

        second = await claim_daily(self.alice, self.ledger, now + timedelta(minutes=1))
        self.assertFalse(second.success)
        self.assertEqual(second.error, ErrorKind.COOLDOWN)
        self.assertIn("23h 59m 0s", second.error_message)
        self.assertEqual(self.balance("1"), 100)

    async def test_beg_credits_between_one_and_ten(self):
        result = await beg(self.alice, self.ledger, ScriptedRandom(ints=[7]))
        self.assertTrue(result.success)
        self.assertEqual(self.balance("1"), 7)

    async def test_rob_is_capped_at_target_balance(self):
        self.repo.seed("2", 5)
        result = await rob(self.alice, self.bob, self.ledger, ScriptedRandom(ints=[40]))
        self.assertTrue(result.success)
        self.assertEqual(self.balance("2"), 0)
        self.assertEqual(self.balance("1"), 5)

    async def test_rob_target_with_nothing(self):
        result = await rob(self.alice, self.bob, self.ledger, ScriptedRandom(ints=[40]))
        self.assertEqual(result.text, "<@2> has nothing to steal!")
        self.assertEqual(self.balance("1"), 0)

    async def test_rob_yourself_is_rejected(self):
        result = await rob(self.alice, self.alice, self.ledger, ScriptedRandom())
        self.assertEqual(result.error, ErrorKind.VALIDATION)

    async def test_pay_with_insufficient_funds_changes_nothing(self):
        self.repo.seed("1", 40)
        self.repo.seed("2", 10)
        result = await pay(self.alice, self.bob, 50, self.ledger)
        self.assertFalse(result.success)
        self.assertEqual(result.error, ErrorKind.INSUFFICIENT_FUNDS)
        self.assertEqual(result.error_message, "You don't have enough coins! You have 40 coins.")
        self.assertEqual(self.balance("1"), 40)
        self.assertEqual(self.balance("2"), 10)

    async def test_pay_moves_exact_amount(self):
        self.repo.seed("1", 100)
        result = await pay(self.alice, self.bob, 30, self.ledger)
        self.assertTrue(result.success)
        self.assertEqual(self.balance("1"), 70)
        self.assertEqual(self.balance("2"), 30)

    async def test_bankrupt_requires_admin(self):
        self.repo.seed("2", 500)
        result = await bankrupt(self.alice, self.bob, self.ledger)
        self.assertEqual(result.error, ErrorKind.PERMISSION_DENIED)
        self.assertEqual(self.balance("2"), 500)

        admin = user("3", "Admin", is_admin=True)
        result = await bankrupt(admin, self.bob, self.ledger)
        self.assertTrue(result.success)
        self.assertEqual(self.balance("2"), 0)

    def test_profile_of_non_player_does_not_create_account(self):
        result = get_profile(self.bob, self.ledger)
        self.assertFalse(result.success)
        self.assertEqual(result.error, ErrorKind.NOT_PLAYING)
        self.assertIsNone(self.repo.get_account(SERVER_ID, "2"))

    async def test_gamble_win_and_loss_move_the_stake(self):
        self.repo.seed("1", 100)
        won = await play_gamble(self.alice, 30, self.ledger, ScriptedRandom(floats=[0.1]))
        self.assertTrue(won.success)
        self.assertEqual(self.balance("1"), 130)

        lost = await play_gamble(self.alice, 30, self.ledger, ScriptedRandom(floats=[0.9]))
        self.assertTrue(lost.success)
        self.assertEqual(self.balance("1"), 100)

    async def test_gamble_more_than_balance_is_rejected(self):
        self.repo.seed("1", 10)
        result = await play_gamble(self.alice, 30, self.ledger, ScriptedRandom(floats=[0.1]))
        self.assertEqual(result.error, ErrorKind.INSUFFICIENT_FUNDS)
        self.assertEqual(self.balance("1"), 10)

    async def test_lottery_needs_hundred_coins(self):
        self.repo.seed("1", 99)
        result = await play_lottery(self.alice, self.ledger, ScriptedRandom(floats=[0.5]))
        self.assertEqual(result.error, ErrorKind.INSUFFICIENT_FUNDS)

        self.repo.set_balance(SERVER_ID, "1", 100)
        result = await play_lottery(self.alice, self.ledger, ScriptedRandom(floats=[0.5]))
        self.assertTrue(result.success)
        self.assertEqual(self.balance("1"), 0)

    async def test_slots_jackpot(self):
        self.repo.seed("1", 10)
        rng = ScriptedRandom(choices=["7️⃣", "7️⃣", "7️⃣"])
        result = await play_slots(self.alice, self.ledger, rng)
        self.assertTrue(result.success)
        self.assertEqual(self.balance("1"), 500)
        self.assertIn("Jackpot", result.text)

    async def test_unknown_command_opens_account_and_reports(self):
        result = await run_unknown_command("dance", self.alice, self.ledger)
        self.assertEqual(result.text, "I'm sorry, I don't recognize that command.")
        self.assertIsNotNone(self.repo.get_account(SERVER_ID, "1"))


if __name__ == "__main__":
    unittest.main()

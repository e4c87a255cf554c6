import unittest

from application.commands import Verb, parse_command, parse_mention
from domain.errors import ValidationError


def parse(text: str):
    return parse_command(text, "mary")


class ParseCommandTests(unittest.TestCase):
    def test_messages_not_addressed_to_the_bot_are_ignored(self):
        self.assertIsNone(parse("hello mary"))
        self.assertIsNone(parse(""))
        self.assertIsNone(parse("marybal"))

    def test_bot_name_is_case_insensitive_but_verbs_are_not(self):
        self.assertEqual(parse("MARY bal").verb, Verb.BALANCE)
        command = parse("mary BAL")
        self.assertEqual(command.verb, Verb.UNKNOWN)
        self.assertEqual(command.name, "BAL")

    def test_missing_verb_is_unknown(self):
        command = parse("mary")
        self.assertEqual(command.verb, Verb.UNKNOWN)
        self.assertEqual(command.name, "")

    def test_aliases(self):
        self.assertEqual(parse("mary give <@2> 5").verb, Verb.PAY)
        self.assertEqual(parse("mary leaderboard").verb, Verb.LEADERBOARD)
        self.assertEqual(parse("mary triv").verb, Verb.TRIVIA)
        self.assertEqual(parse("mary quiz").verb, Verb.TRIVIA)

    def test_test_variants(self):
        self.assertFalse(parse("mary test").probe_connection)
        self.assertTrue(parse("mary test connection").probe_connection)
        self.assertEqual(parse("mary test something").verb, Verb.UNKNOWN)

    def test_mentions(self):
        self.assertEqual(parse_mention("<@123>"), "123")
        self.assertEqual(parse_mention("<@!123>"), "123")
        self.assertIsNone(parse_mention("@bob"))
        self.assertIsNone(parse_mention("<@abc>"))

    def test_balance_arguments(self):
        self.assertIsNone(parse("mary bal").target_id)
        self.assertEqual(parse("mary bal <@!42>").target_id, "42")
        for text in ("mary bal bob", "mary bal <@1> <@2>"):
            with self.assertRaises(ValidationError) as ctx:
                parse(text)
            self.assertEqual(ctx.exception.message, "Error retrieving balance!")

    def test_delete_arguments(self):
        self.assertEqual(parse("mary del 5").amount, 5)
        self.assertEqual(parse("mary del").verb, Verb.UNKNOWN)
        for text in ("mary del five", "mary del -3"):
            with self.assertRaises(ValidationError) as ctx:
                parse(text)
            self.assertEqual(ctx.exception.message, "Please enter a valid number!")

    def test_bankrupt_requires_a_mention(self):
        self.assertEqual(parse("mary bankrupt <@7>").target_id, "7")
        with self.assertRaises(ValidationError) as ctx:
            parse("mary bankrupt")
        self.assertEqual(ctx.exception.message, "Please mention a user! Are you trying to bankrupt yourself?")

    def test_rob_requires_a_mention(self):
        with self.assertRaises(ValidationError):
            parse("mary rob")
        self.assertEqual(parse("mary rob <@8>").target_id, "8")

    def test_pay_validation_messages(self):
        cases = {
            "mary pay": "Please mention a user to pay!",
            "mary pay <@2>": "Please specify an amount to be paid!",
            "mary pay <@2> lots": "Please specify a valid amount to be paid!",
            "mary pay <@2> -5": "Please specify a positive amount to be paid!",
            "mary pay <@2> 0": "Please specify a positive amount to be paid!",
        }
        for text, expected in cases.items():
            with self.subTest(text=text):
                with self.assertRaises(ValidationError) as ctx:
                    parse(text)
                self.assertEqual(ctx.exception.message, expected)

        command = parse("mary pay <@2> 50")
        self.assertEqual((command.target_id, command.amount), ("2", 50))

    def test_gamble_validation_messages(self):
        cases = {
            "mary gamble": "Please specify an amount to be gambled!",
            "mary gamble all": "Please specify a valid amount to be gambled!",
            "mary gamble -1": "Please specify a positive amount to be gambled!",
        }
        for text, expected in cases.items():
            with self.subTest(text=text):
                with self.assertRaises(ValidationError) as ctx:
                    parse(text)
                self.assertEqual(ctx.exception.message, expected)
        self.assertEqual(parse("mary gamble 25").amount, 25)

    def test_trivia_stake(self):
        self.assertEqual(parse("mary trivia").amount, 0)
        self.assertEqual(parse("mary trivia 20").amount, 20)
        with self.assertRaises(ValidationError):
            parse("mary trivia twenty")
        with self.assertRaises(ValidationError):
            parse("mary trivia -20")

    def test_fixed_stake_games_note_extra_arguments(self):
        self.assertFalse(parse("mary lottery").extra_args)
        self.assertTrue(parse("mary lottery 500").extra_args)
        self.assertTrue(parse("mary slots 1 2").extra_args)

    def test_whitespace_tokenisation(self):
        command = parse("  mary   pay   <@2>   10 ")
        self.assertEqual(command.amount, 10)


if __name__ == "__main__":
    unittest.main()

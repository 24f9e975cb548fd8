"""Production confirmation gate and protected-branch checks."""


from argparse import Namespace
from unittest.mock import Mock
import unittest

from drift import protection
from drift.error_model import InteractiveCancelled, ProtectedBranchPush
from drift.models import Environment, Session
from drift.protection import Level

from tests._fakes import ScriptedPrompter


class ConfirmTests(unittest.TestCase):
    def test_non_production_never_prompts(self) -> None:
        for env in (Environment.DEVELOPMENT, Environment.FEATURE):
            for level in Level:
                prompter = ScriptedPrompter()
                with self.subTest(env=env, level=level):
                    self.assertTrue(protection.confirm(env, "push",
                                    level, Session(), prompter, Mock()))
                    self.assertEqual(prompter.calls, [])

    def test_assume_yes_bypasses_production(self) -> None:
        prompter = ScriptedPrompter()
        out = Mock()
        self.assertTrue(protection.confirm(Environment.PRODUCTION,
                        "reset database", Level.STRICT,
                        Session(assume_yes=True), prompter, out))
        self.assertEqual(prompter.calls, [])
        out.warn.assert_not_called()

    def test_standard_asks_yes_no_defaulting_to_no(self) -> None:
        prompter = ScriptedPrompter(confirms=[True])
        out = Mock()
        self.assertTrue(protection.confirm(Environment.PRODUCTION, "deploy",
                        Level.STANDARD, Session(), prompter, out))
        self.assertEqual(prompter.calls, [("confirm", "Continue?")])
        out.warn.assert_called_once_with(
            "You are about to deploy on PRODUCTION!")

    def test_standard_decline_is_not_an_error(self) -> None:
        out = Mock()
        self.assertFalse(protection.confirm(Environment.PRODUCTION, "deploy",
                         Level.STANDARD, Session(),
                         ScriptedPrompter(confirms=[False]), out))
        out.info.assert_called_once_with("Cancelled")

    def test_strict_requires_typed_token(self) -> None:
        cases = {"yes": True, "  YES ": True, "y": False, "": False,
                 "yes please": False}
        for answer, expected in cases.items():
            with self.subTest(answer=answer):
                prompter = ScriptedPrompter(answers=[answer])
                self.assertIs(protection.confirm(Environment.PRODUCTION,
                              "reset", Level.STRICT, Session(),
                              prompter, Mock()), expected)
                self.assertEqual(prompter.calls[0][0], "ask")

    def test_cancelled_prompt_raises(self) -> None:
        with self.assertRaises(InteractiveCancelled):
            protection.confirm(Environment.PRODUCTION, "deploy",
                               Level.STANDARD, Session(),
                               ScriptedPrompter(cancel=True), Mock())

    def test_non_interactive_session_declines_production(self) -> None:
        for level in Level:
            prompter = ScriptedPrompter(confirms=[True], answers=["yes"])
            out = Mock()
            with self.subTest(level=level):
                self.assertFalse(protection.confirm(Environment.PRODUCTION,
                                 "deploy", level, Session(interactive=False),
                                 prompter, out))
                self.assertEqual(prompter.calls, [])
                out.info.assert_called_once_with("Cancelled")

    def test_assume_yes_wins_over_non_interactive(self) -> None:
        session = Session(assume_yes=True, interactive=False)
        self.assertTrue(protection.confirm(Environment.PRODUCTION, "deploy",
                        Level.STRICT, session, ScriptedPrompter(), Mock()))

    def test_level_wrappers(self) -> None:
        prompter = ScriptedPrompter(confirms=[True], answers=["yes"])
        self.assertTrue(protection.confirm_production(
            Environment.PRODUCTION, "deploy", Session(), prompter, Mock()))
        self.assertTrue(protection.require_production(
            Environment.PRODUCTION, "deploy", Session(), prompter, Mock()))
        self.assertEqual([c[0] for c in prompter.calls], ["confirm", "ask"])


class DestructiveTests(unittest.TestCase):
    def test_prompts_on_any_environment(self) -> None:
        prompter = ScriptedPrompter(confirms=[True])
        self.assertTrue(protection.confirm_destructive("drop the table",
                        Level.STANDARD, Session(), prompter, Mock()))
        self.assertEqual(len(prompter.calls), 1)

    def test_strict_warns_irreversible(self) -> None:
        out = Mock()
        self.assertFalse(protection.confirm_destructive("reset data",
                         Level.STRICT, Session(),
                         ScriptedPrompter(answers=["no"]), out))
        warnings = [c.args[0] for c in out.warn.call_args_list]
        self.assertIn("This action cannot be undone!", warnings)

    def test_assume_yes_skips(self) -> None:
        prompter = ScriptedPrompter()
        self.assertTrue(protection.confirm_destructive("reset data",
                        Level.STRICT, Session(assume_yes=True),
                        prompter, Mock()))
        self.assertEqual(prompter.calls, [])

    def test_non_interactive_declines(self) -> None:
        prompter = ScriptedPrompter(confirms=[True])
        self.assertFalse(protection.confirm_destructive("drop the table",
                         Level.STANDARD, Session(interactive=False),
                         prompter, Mock()))
        self.assertEqual(prompter.calls, [])


class WarnTests(unittest.TestCase):
    def test_warns_only_for_production(self) -> None:
        out = Mock()
        protection.warn_if_production(Environment.FEATURE, out)
        out.warn.assert_not_called()
        protection.warn_if_production(Environment.PRODUCTION, out)
        out.warn.assert_called_once()


class ProtectedPushTests(unittest.TestCase):
    def test_builtin_names_refused(self) -> None:
        with self.assertRaises(ProtectedBranchPush) as ctx:
            protection.check_protected_push("main", Namespace())
        self.assertIn("--force", ctx.exception.suggested_fix)

    def test_configured_names_refused(self) -> None:
        args = Namespace(protected_branches=("release",))
        with self.assertRaises(ProtectedBranchPush):
            protection.check_protected_push("Release", args)

    def test_force_allows(self) -> None:
        protection.check_protected_push("main", Namespace(), force=True)

    def test_feature_branch_allowed(self) -> None:
        protection.check_protected_push("feature/x",
            Namespace(protected_branches=("release",)))


if __name__ == "__main__":
    unittest.main()

"""Tests for runtime error-envelope code mapping."""


import unittest

from drift.error_model import (
    ERROR_CODE_POLICY,
    DirectoryUnavailable,
    FallbackNotFound,
    InteractiveCancelled,
    ProductionRefused,
    ResolutionError,
    Unresolved,
    build_error_envelope,
    error_policy_for,
)


class RuntimeErrorEnvelopeTests(unittest.TestCase):
    def test_resolution_error_maps_code_and_target(self) -> None:
        envelope = build_error_envelope(Unresolved("checkout-flow"),
                   "resolve", {"ci_mode": True})
        self.assertEqual(envelope.code, "DRIFT_RES_UNRESOLVED")
        self.assertEqual(envelope.category, "resolution")
        self.assertEqual(envelope.target, "checkout-flow")
        self.assertEqual(envelope.operation, "resolve")
        self.assertFalse(envelope.retryable)
        self.assertIn("fallback", envelope.suggested_fix)

    def test_directory_failure_is_retryable(self) -> None:
        envelope = build_error_envelope(DirectoryUnavailable("offline"),
                   "env show", {})
        self.assertEqual(envelope.code, "DRIFT_NET_DIRECTORY_UNAVAILABLE")
        self.assertEqual(envelope.category, "network")
        self.assertTrue(envelope.retryable)

    def test_cancellation_is_a_warning(self) -> None:
        envelope = build_error_envelope(InteractiveCancelled("x"), "guard", {})
        self.assertEqual(envelope.severity, "warn")

    def test_keyboard_interrupt(self) -> None:
        envelope = build_error_envelope(KeyboardInterrupt(), "resolve", {})
        self.assertEqual(envelope.code, "DRIFT_INT_KEYBOARD_INTERRUPT")
        self.assertEqual(envelope.category, "workflow")

    def test_unhandled_exception(self) -> None:
        envelope = build_error_envelope(RuntimeError("boom"), "branches", {})
        self.assertEqual(envelope.code, "DRIFT_INT_UNHANDLED_EXCEPTION")
        self.assertEqual(envelope.message, "boom")
        self.assertIn("--debug", envelope.suggested_fix)

    def test_runtime_schema_fields(self) -> None:
        payload = build_error_envelope(ProductionRefused("main"), "guard",
                  {"branch": "feature/x"}).with_runtime_schema()
        self.assertEqual(payload["schema"], "drift.error_envelope.v1")
        self.assertEqual(payload["schema_version"], 1)
        self.assertTrue(str(payload["generated_at"]).endswith("Z"))
        self.assertEqual(payload["context"], {"branch": "feature/x"})

    def test_every_error_class_has_a_policy(self) -> None:
        def walk(cls: type) -> list[type]:
            out = []
            for sub in cls.__subclasses__():
                out.append(sub)
                out.extend(walk(sub))
            return out

        for cls in walk(ResolutionError):
            with self.subTest(cls=cls.__name__):
                self.assertIn(cls.code, ERROR_CODE_POLICY)

    def test_messages_name_what_failed(self) -> None:
        self.assertIn("'dev2'", FallbackNotFound("dev2").message)
        self.assertIn("'main'", ProductionRefused("main").message)

    def test_unknown_code_falls_back(self) -> None:
        self.assertEqual(error_policy_for("NOPE"),
                         {"severity": "error", "category": "workflow"})


if __name__ == "__main__":
    unittest.main()

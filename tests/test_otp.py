import unittest

from medibook.services.otp import InMemoryOtpStore, OtpService, generate_code


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class OtpServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.store = InMemoryOtpStore()
        self.otp = OtpService(
            store=self.store,
            clock=self.clock,
            ttl_seconds=300,
            max_attempts=3,
            code_factory=lambda: "123456",
        )

    def test_generated_code_is_six_digits(self) -> None:
        for _ in range(50):
            code = generate_code()
            self.assertEqual(len(code), 6)
            self.assertTrue(code.isdigit())

    def test_correct_code_is_consumed(self) -> None:
        self.otp.issue("Ravi@Example.test")

        result = self.otp.verify("ravi@example.test", "123456")

        self.assertTrue(result.valid)
        self.assertEqual(result.message, "OTP verified successfully")
        self.assertEqual(len(self.store), 0)
        self.assertFalse(self.otp.verify("ravi@example.test", "123456").valid)

    def test_revoked_code_no_longer_verifies(self) -> None:
        self.otp.issue("Ravi@Example.test")

        self.otp.revoke(" ravi@example.test ")

        self.assertEqual(len(self.store), 0)
        self.assertIsNone(self.otp.status("ravi@example.test"))
        self.assertFalse(self.otp.verify("ravi@example.test", "123456").valid)

    def test_unknown_contact(self) -> None:
        result = self.otp.verify("nobody@example.test", "123456")

        self.assertFalse(result.valid)
        self.assertEqual(result.remaining_attempts, 0)
        self.assertIn("not found", result.message)

    def test_expired_code(self) -> None:
        self.otp.issue("ravi@example.test")
        self.clock.advance(301)

        result = self.otp.verify("ravi@example.test", "123456")

        self.assertFalse(result.valid)
        self.assertIn("expired", result.message)
        self.assertEqual(len(self.store), 0)

    def test_code_valid_until_ttl(self) -> None:
        self.otp.issue("ravi@example.test")
        self.clock.advance(300)

        self.assertTrue(self.otp.verify("ravi@example.test", "123456").valid)

    def test_wrong_codes_count_down(self) -> None:
        self.otp.issue("ravi@example.test")

        first = self.otp.verify("ravi@example.test", "000000")
        second = self.otp.verify("ravi@example.test", "000000")

        self.assertEqual((first.valid, first.message, first.remaining_attempts), (False, "Invalid OTP", 2))
        self.assertEqual(second.remaining_attempts, 1)
        self.assertTrue(self.otp.verify("ravi@example.test", "123456").valid)

    def test_attempts_exhausted_evicts(self) -> None:
        self.otp.issue("ravi@example.test")
        for _ in range(3):
            last = self.otp.verify("ravi@example.test", "000000")

        self.assertEqual(last.remaining_attempts, 0)
        self.assertEqual(len(self.store), 0)
        # The right code no longer helps once the budget is spent
        self.assertFalse(self.otp.verify("ravi@example.test", "123456").valid)

    def test_reissue_resets_attempts(self) -> None:
        self.otp.issue("ravi@example.test")
        self.otp.verify("ravi@example.test", "000000")

        self.otp.issue("ravi@example.test")

        self.assertEqual(self.otp.status("ravi@example.test")["attempts"], 0)

    def test_status(self) -> None:
        self.assertIsNone(self.otp.status("ravi@example.test"))

        self.otp.issue("ravi@example.test")
        self.clock.advance(100)
        self.otp.verify("ravi@example.test", "999999")

        self.assertEqual(
            self.otp.status("ravi@example.test"),
            {"exists": True, "remainingTime": 200, "attempts": 1, "maxAttempts": 3},
        )

        self.clock.advance(201)
        self.assertIsNone(self.otp.status("ravi@example.test"))
        self.assertEqual(len(self.store), 0)

    def test_contacts_are_independent(self) -> None:
        self.otp.issue("a@example.test")
        self.otp.issue("+919876543210")

        self.assertTrue(self.otp.verify("+919876543210", "123456").valid)
        self.assertIsNotNone(self.otp.status("a@example.test"))


if __name__ == "__main__":
    unittest.main()

from django.test import SimpleTestCase

from exams.question_types import (
    EssayPayload, MatchingPayload, MultipleChoicePayload, PayloadError, QuestionType,
    ShortAnswerPayload, TrueFalsePayload, is_blank, is_manual, parse_payload,
)

from .factories import ESSAY_PAYLOAD, MATCHING_PAYLOAD, MC_PAYLOAD


class ParsePayloadTestCase(SimpleTestCase):
    def test_each_type_parses_to_its_payload_class(self):
        self.assertIsInstance(parse_payload("multiple_choice", MC_PAYLOAD), MultipleChoicePayload)
        self.assertIsInstance(parse_payload("true_false", {"correct_value": False}), TrueFalsePayload)
        self.assertIsInstance(parse_payload("short_answer", {"accepted_answers": ["x"]}), ShortAnswerPayload)
        self.assertIsInstance(parse_payload("matching", MATCHING_PAYLOAD), MatchingPayload)
        self.assertIsInstance(parse_payload("essay", ESSAY_PAYLOAD), EssayPayload)

    def test_unknown_type_is_rejected(self):
        with self.assertRaises(PayloadError) as ctx:
            parse_payload("fill_in_blank", {})
        self.assertEqual(ctx.exception.field, "question_type")

    def test_multiple_choice_key_must_be_an_option(self):
        payload = dict(MC_PAYLOAD, correct_option_id="z")
        with self.assertRaises(PayloadError) as ctx:
            parse_payload("multiple_choice", payload)
        self.assertEqual(ctx.exception.field, "correct_option_id")

    def test_multiple_choice_rejects_duplicate_option_ids(self):
        payload = {"options": [{"id": "a", "text": "x"}, {"id": "a", "text": "y"}], "correct_option_id": "a"}
        with self.assertRaises(PayloadError):
            parse_payload("multiple_choice", payload)

    def test_true_false_needs_a_real_boolean(self):
        with self.assertRaises(PayloadError):
            parse_payload("true_false", {"correct_value": "true"})

    def test_short_answer_accepts_a_single_string(self):
        payload_spec = parse_payload("short_answer", {"accepted_answers": " Jakarta "})
        self.assertEqual(payload_spec.accepted_answers, ("Jakarta",))
        self.assertFalse(payload_spec.case_sensitive)

    def test_matching_must_pair_every_left_item(self):
        payload = dict(MATCHING_PAYLOAD, correct_pairs={"l1": "r1"})
        with self.assertRaises(PayloadError) as ctx:
            parse_payload("matching", payload)
        self.assertEqual(ctx.exception.field, "correct_pairs")

    def test_essay_bounds_must_be_ordered(self):
        with self.assertRaises(PayloadError):
            parse_payload("essay", {"min_words": 100, "max_words": 10})

    def test_essay_payload_may_be_empty(self):
        payload_spec = parse_payload("essay", {})
        self.assertIsNone(payload_spec.min_words)
        self.assertEqual(payload_spec.reference_answer, "")

    def test_only_essay_is_manual(self):
        self.assertTrue(is_manual(QuestionType.ESSAY))
        for question_type in ("multiple_choice", "true_false", "short_answer", "matching"):
            self.assertFalse(is_manual(question_type))


class CleanAnswerTestCase(SimpleTestCase):
    def test_blank_answers_clean_to_none(self):
        payload_spec = parse_payload("multiple_choice", MC_PAYLOAD)
        self.assertIsNone(payload_spec.clean_answer(""))
        self.assertIsNone(payload_spec.clean_answer(None))

    def test_multiple_choice_rejects_unknown_option(self):
        payload_spec = parse_payload("multiple_choice", MC_PAYLOAD)
        self.assertEqual(payload_spec.clean_answer(" b "), "b")
        with self.assertRaises(PayloadError):
            payload_spec.clean_answer("z")

    def test_true_false_keeps_false(self):
        payload_spec = parse_payload("true_false", {"correct_value": True})
        self.assertIs(payload_spec.clean_answer(False), False)
        with self.assertRaises(PayloadError):
            payload_spec.clean_answer("yes")

    def test_matching_drops_unset_pairs_and_rejects_unknown_ids(self):
        payload_spec = parse_payload("matching", MATCHING_PAYLOAD)
        self.assertEqual(payload_spec.clean_answer({"l1": "r1", "l2": None}), {"l1": "r1"})
        with self.assertRaises(PayloadError):
            payload_spec.clean_answer({"l9": "r1"})
        with self.assertRaises(PayloadError):
            payload_spec.clean_answer({"l1": "r9"})

    def test_is_blank(self):
        self.assertTrue(is_blank("   "))
        self.assertTrue(is_blank({}))
        self.assertFalse(is_blank(False))
        self.assertFalse(is_blank(0))

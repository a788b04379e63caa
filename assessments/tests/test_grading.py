from django.test import SimpleTestCase

from assessments.grading import Verdict, grade, round_half_up
from exams.models import Question
from exams.tests.factories import unsaved_question

QT = Question.QuestionType


class RoundHalfUpTestCase(SimpleTestCase):
    def test_halves_round_up(self):
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(0.5), 1)
        self.assertEqual(round_half_up(12.5), 13)

    def test_other_values_round_to_nearest(self):
        self.assertEqual(round_half_up(2.4), 2)
        self.assertEqual(round_half_up(66.67), 67)


class GraderTestCase(SimpleTestCase):
    def test_multiple_choice(self):
        question = unsaved_question(QT.MULTIPLE_CHOICE)
        self.assertEqual(grade(question, "b"), Verdict(True, 100))
        self.assertEqual(grade(question, "a"), Verdict(False, 0))

    def test_true_false_requires_boolean(self):
        question = unsaved_question(QT.TRUE_FALSE)
        self.assertEqual(grade(question, True), Verdict(True, 100))
        self.assertEqual(grade(question, False), Verdict(False, 0))
        self.assertEqual(grade(question, "true"), Verdict(False, 0))

    def test_short_answer_is_case_insensitive_by_default(self):
        question = unsaved_question(QT.SHORT_ANSWER)
        self.assertTrue(grade(question, "  jakarta ").is_correct)
        self.assertTrue(grade(question, "DKI JAKARTA").is_correct)
        self.assertFalse(grade(question, "Bandung").is_correct)

    def test_short_answer_case_sensitive(self):
        question = unsaved_question(QT.SHORT_ANSWER, payload={"accepted_answers": ["NaCl"], "case_sensitive": True})
        self.assertTrue(grade(question, "NaCl").is_correct)
        self.assertFalse(grade(question, "nacl").is_correct)

    def test_matching_gives_partial_credit(self):
        question = unsaved_question(QT.MATCHING)
        verdict = grade(question, {"l1": "r1", "l2": "r2", "l3": "r3", "l4": "r1"})
        self.assertEqual(verdict, Verdict(False, 75))

    def test_matching_all_pairs_correct(self):
        question = unsaved_question(QT.MATCHING)
        verdict = grade(question, {"l1": "r1", "l2": "r2", "l3": "r3", "l4": "r4"})
        self.assertEqual(verdict, Verdict(True, 100))

    def test_matching_rounds_half_up(self):
        payload = {
            "left_items": [{"id": f"l{i}", "text": str(i)} for i in range(8)],
            "right_items": [{"id": f"r{i}", "text": str(i)} for i in range(8)],
            "correct_pairs": {f"l{i}": f"r{i}" for i in range(8)},
        }
        question = unsaved_question(QT.MATCHING, payload=payload)
        self.assertEqual(grade(question, {"l0": "r0"}).raw_score, 13)

    def test_blank_auto_answers_score_zero_not_null(self):
        for question_type in (QT.MULTIPLE_CHOICE, QT.TRUE_FALSE, QT.SHORT_ANSWER, QT.MATCHING):
            verdict = grade(unsaved_question(question_type), None)
            self.assertEqual(verdict, Verdict(False, 0), question_type)
        self.assertEqual(grade(unsaved_question(QT.MATCHING), {}), Verdict(False, 0))

    def test_essay_is_left_for_a_human(self):
        verdict = grade(unsaved_question(QT.ESSAY), "Light becomes sugar.")
        self.assertEqual(verdict, Verdict(None, None))
        self.assertTrue(verdict.is_manual)

    def test_wrong_shapes_grade_as_incorrect(self):
        self.assertFalse(grade(unsaved_question(QT.MATCHING), "l1").is_correct)
        self.assertFalse(grade(unsaved_question(QT.SHORT_ANSWER), 42).is_correct)
        self.assertFalse(grade(unsaved_question(QT.MULTIPLE_CHOICE), True).is_correct)

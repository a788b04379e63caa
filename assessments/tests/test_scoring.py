from decimal import Decimal
from types import SimpleNamespace

from django.test import SimpleTestCase

from assessments.grading import grade
from assessments.scoring import aggregate
from assessments.states import SubmissionStatus
from exams.models import Question
from exams.tests.factories import unsaved_question

QT = Question.QuestionType


def graded(question, answer):
    verdict = grade(question, answer)
    return SimpleNamespace(is_correct=verdict.is_correct, grade_value=verdict.raw_score)


class AggregateTestCase(SimpleTestCase):
    def test_three_multiple_choice_two_correct_one_blank(self):
        questions = [unsaved_question(QT.MULTIPLE_CHOICE, question_id=i) for i in (1, 2, 3)]
        answers = {
            1: graded(questions[0], "b"),
            2: graded(questions[1], "b"),
            3: graded(questions[2], None),
        }
        summary = aggregate(questions, answers)
        self.assertEqual(summary.final_score, 20)
        self.assertEqual(summary.total_points, 30)
        self.assertEqual(summary.status, SubmissionStatus.COMPLETED)

    def test_missing_answers_count_as_wrong(self):
        questions = [unsaved_question(QT.MULTIPLE_CHOICE, question_id=i) for i in (1, 2)]
        summary = aggregate(questions, {1: graded(questions[0], "b")})
        self.assertEqual(summary.final_score, 10)

    def test_matching_contributes_rounded_share_of_points(self):
        question = unsaved_question(QT.MATCHING, points=10)
        answer = graded(question, {"l1": "r1", "l2": "r2", "l3": "r3"})
        summary = aggregate([question], {question.id: answer})
        # 75% of 10 points is 7.5
        self.assertEqual(summary.earned_auto, 8)
        self.assertEqual(summary.final_score, 8)

    def test_ungraded_essay_leaves_score_pending(self):
        mc = unsaved_question(QT.MULTIPLE_CHOICE, points=60, question_id=1)
        essay = unsaved_question(QT.ESSAY, points=40, question_id=2)
        answers = {1: graded(mc, "b"), 2: graded(essay, "some text")}
        summary = aggregate([mc, essay], answers)
        self.assertIsNone(summary.final_score)
        self.assertEqual(summary.status, SubmissionStatus.PENDING)
        self.assertFalse(summary.all_manual_graded)
        self.assertEqual(summary.earned_auto, 60)

    def test_graded_essay_completes_score(self):
        mc = unsaved_question(QT.MULTIPLE_CHOICE, points=60, question_id=1)
        essay = unsaved_question(QT.ESSAY, points=40, question_id=2)
        answers = {
            1: graded(mc, "b"),
            2: SimpleNamespace(is_correct=None, grade_value=Decimal("30.00")),
        }
        summary = aggregate([mc, essay], answers)
        self.assertEqual(summary.final_score, 90)
        self.assertEqual(summary.status, SubmissionStatus.COMPLETED)
        self.assertEqual(summary.total_graded, 2)

    def test_essay_points_are_capped_at_the_question_weight(self):
        mc = unsaved_question(QT.MULTIPLE_CHOICE, points=60, question_id=1)
        essay = unsaved_question(QT.ESSAY, points=10, question_id=2)
        answers = {
            1: graded(mc, "b"),
            2: SimpleNamespace(is_correct=None, grade_value=Decimal("40.00")),
        }
        summary = aggregate([mc, essay], answers)
        self.assertEqual(summary.earned_manual, Decimal("10"))
        self.assertEqual(summary.final_score, 70)

    def test_points_are_not_renormalised(self):
        questions = [unsaved_question(QT.TRUE_FALSE, points=5, question_id=i) for i in (1, 2)]
        answers = {1: graded(questions[0], True), 2: graded(questions[1], True)}
        self.assertEqual(aggregate(questions, answers).final_score, 10)

    def test_empty_exam(self):
        summary = aggregate([], {})
        self.assertEqual(summary.final_score, 0)
        self.assertEqual(summary.status, SubmissionStatus.COMPLETED)

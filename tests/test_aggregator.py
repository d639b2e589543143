"""
Tests for grade aggregation and evaluation operations.
"""

import pytest

from grading import GradeAggregator, compute_final_score, validate_competency, validate_score
from utils.auth import AccessPolicy
from utils.errors import NotFoundError, PermissionDeniedError, PersistenceError, ValidationError


@pytest.fixture
def aggregator(essay_gateway, classroom_gateway):
    return GradeAggregator(essay_gateway, AccessPolicy(classroom_gateway))


@pytest.fixture
async def essay(seed, essay_gateway):
    return await essay_gateway.create_essay(
        title="Os desafios da mobilidade urbana",
        student_id=seed.student.user_id,
        submitted_by=seed.student.user_id,
        text="Texto da redação",
        classroom_id=seed.classroom_id,
    )


class TestComputeFinalScore:
    def test_mean_of_scores(self):
        assert compute_final_score([120, 150, 100, 180, 90], auto_score=845) == 128

    def test_falls_back_to_auto_score(self):
        assert compute_final_score([], auto_score=845) == 845

    def test_no_scores_and_no_auto_score(self):
        assert compute_final_score([], auto_score=None) is None

    def test_single_score(self):
        assert compute_final_score([160], auto_score=None) == 160


class TestValidationHelpers:
    @pytest.mark.parametrize("value", [1, 5, 3.0])
    def test_valid_competency(self, value):
        assert validate_competency(value) == int(value)

    @pytest.mark.parametrize("value", [0, 6, 2.5, True, "3", None])
    def test_invalid_competency(self, value):
        with pytest.raises(ValidationError) as exc_info:
            validate_competency(value)
        assert exc_info.value.details["field"] == "competency"

    @pytest.mark.parametrize("value", [0, 200, 137.5])
    def test_valid_score(self, value):
        assert validate_score(value) == float(value)

    @pytest.mark.parametrize("value", [-1, 200.5, 250, float("nan"), False, "100"])
    def test_invalid_score(self, value):
        with pytest.raises(ValidationError) as exc_info:
            validate_score(value)
        assert exc_info.value.details["field"] == "score"


@pytest.mark.integration
class TestRecalculateFinalScore:
    async def test_auto_score_used_without_evaluations(self, aggregator, essay_gateway, essay):
        await essay_gateway.update_essay_auto_score(essay.id, 845)

        assert await aggregator.recalculate_final_score(essay.id) == 845
        assert (await essay_gateway.get_essay(essay.id)).final_score == 845

    async def test_null_without_evaluations_or_auto_score(self, aggregator, essay_gateway, essay):
        assert await aggregator.recalculate_final_score(essay.id) is None
        assert (await essay_gateway.get_essay(essay.id)).final_score is None

    async def test_missing_essay(self, aggregator):
        with pytest.raises(PersistenceError) as exc_info:
            await aggregator.recalculate_final_score("missing")
        assert exc_info.value.essay_missing


@pytest.mark.integration
class TestEvaluationWrites:
    async def test_final_score_is_mean_of_evaluations(self, aggregator, essay_gateway, essay, seed):
        await essay_gateway.update_essay_auto_score(essay.id, 845)

        for competency, score in zip(range(1, 6), [120, 150, 100, 180, 90]):
            await aggregator.create_evaluation(seed.teacher, essay.id, competency, score)

        stored = await essay_gateway.get_essay(essay.id)
        assert stored.final_score == 128
        assert stored.auto_score == 845

    async def test_duplicate_competency_is_rejected(self, aggregator, essay_gateway, essay, seed):
        await aggregator.create_evaluation(seed.teacher, essay.id, 3, 140, comment="Bom repertório")

        with pytest.raises(ValidationError):
            await aggregator.create_evaluation(seed.teacher, essay.id, 3, 180)

        evaluations = await essay_gateway.get_evaluations(essay.id)
        assert len(evaluations) == 1
        assert evaluations[0].score == 140
        assert (await essay_gateway.get_essay(essay.id)).final_score == 140

    @pytest.mark.parametrize("competency,score", [(6, 100), (3, 250), (0, 100), (3, -5)])
    async def test_out_of_range_rejected_before_write(
        self, aggregator, essay_gateway, essay, seed, competency, score
    ):
        with pytest.raises(ValidationError):
            await aggregator.create_evaluation(seed.teacher, essay.id, competency, score)

        assert await essay_gateway.get_evaluations(essay.id) == []
        assert (await essay_gateway.get_essay(essay.id)).final_score is None

    async def test_unknown_essay(self, aggregator, seed):
        with pytest.raises(NotFoundError):
            await aggregator.create_evaluation(seed.teacher, "missing", 1, 100)

    async def test_update_recomputes(self, aggregator, essay_gateway, essay, seed):
        first = await aggregator.create_evaluation(seed.teacher, essay.id, 1, 100)
        await aggregator.create_evaluation(seed.teacher, essay.id, 2, 200)

        updated = await aggregator.update_evaluation(seed.teacher, first.id, score=160)

        assert updated.score == 160
        assert (await essay_gateway.get_essay(essay.id)).final_score == 180

    async def test_update_onto_taken_competency(self, aggregator, essay_gateway, essay, seed):
        first = await aggregator.create_evaluation(seed.teacher, essay.id, 1, 100)
        await aggregator.create_evaluation(seed.teacher, essay.id, 2, 200)

        with pytest.raises(ValidationError):
            await aggregator.update_evaluation(seed.teacher, first.id, competency=2)

        assert (await essay_gateway.get_evaluation(first.id)).competency == 1

    async def test_update_moves_to_free_competency(self, aggregator, essay, seed):
        first = await aggregator.create_evaluation(seed.teacher, essay.id, 1, 100)

        updated = await aggregator.update_evaluation(seed.teacher, first.id, competency=4)

        assert updated.competency == 4

    async def test_update_unknown_evaluation(self, aggregator, seed):
        with pytest.raises(NotFoundError):
            await aggregator.update_evaluation(seed.teacher, "missing", score=100)

    async def test_delete_recomputes_and_falls_back(self, aggregator, essay_gateway, essay, seed):
        await essay_gateway.update_essay_auto_score(essay.id, 845)
        first = await aggregator.create_evaluation(seed.teacher, essay.id, 1, 100)
        second = await aggregator.create_evaluation(seed.teacher, essay.id, 2, 200)

        await aggregator.delete_evaluation(seed.teacher, first.id)
        assert (await essay_gateway.get_essay(essay.id)).final_score == 200

        await aggregator.delete_evaluation(seed.teacher, second.id)
        assert (await essay_gateway.get_essay(essay.id)).final_score == 845

    async def test_delete_unknown_evaluation(self, aggregator, seed):
        with pytest.raises(NotFoundError):
            await aggregator.delete_evaluation(seed.teacher, "missing")


@pytest.mark.integration
class TestEvaluationPermissions:
    async def test_student_cannot_grade(self, aggregator, essay_gateway, essay, seed):
        with pytest.raises(PermissionDeniedError):
            await aggregator.create_evaluation(seed.student, essay.id, 1, 200)

        assert await essay_gateway.get_evaluations(essay.id) == []

    async def test_unrelated_teacher_cannot_grade(self, aggregator, essay, seed):
        with pytest.raises(PermissionDeniedError):
            await aggregator.create_evaluation(seed.other_teacher, essay.id, 1, 100)

    async def test_admin_can_grade(self, aggregator, essay, seed):
        evaluation = await aggregator.create_evaluation(seed.admin, essay.id, 1, 100)
        assert evaluation.evaluator_id == seed.admin.user_id

    async def test_unrelated_teacher_cannot_delete(self, aggregator, essay, seed):
        evaluation = await aggregator.create_evaluation(seed.teacher, essay.id, 1, 100)

        with pytest.raises(PermissionDeniedError):
            await aggregator.delete_evaluation(seed.other_teacher, evaluation.id)

    async def test_owner_can_list_evaluations(self, aggregator, essay, seed):
        await aggregator.create_evaluation(seed.teacher, essay.id, 2, 120)
        await aggregator.create_evaluation(seed.teacher, essay.id, 1, 160)

        evaluations = await aggregator.list_evaluations(seed.student, essay.id)

        assert [e.competency for e in evaluations] == [1, 2]

    async def test_other_student_cannot_list(self, aggregator, essay, seed):
        with pytest.raises(PermissionDeniedError):
            await aggregator.list_evaluations(seed.other_student, essay.id)

"""Setup-wizard progress."""
import pytest

from core.exceptions import OnboardingStepError
from services.onboarding import LAST_STEP, complete_step, get_or_create_progress, update_progress


class TestOnboardingProgress:
    async def test_created_once_per_user(self, db, user):
        first = await get_or_create_progress(db, user.id)
        second = await get_or_create_progress(db, user.id)

        assert first.id == second.id
        assert first.current_step == 1
        assert first.completed_steps == []

    async def test_complete_step_advances_and_scores(self, db, user):
        progress = await get_or_create_progress(db, user.id)

        complete_step(progress, 1, health_delta=15, data={"restaurant_name": "Trattoria"})
        complete_step(progress, 2, health_delta=10)
        complete_step(progress, 1)

        assert progress.completed_steps == [1, 2]
        assert progress.current_step == 2
        assert progress.setup_health_score == 25
        assert progress.data == {"restaurant_name": "Trattoria"}
        assert progress.completed_at is None

    def test_health_score_is_bounded(self):
        from db.onboarding import OnboardingProgress

        progress = OnboardingProgress(current_step=1, completed_steps=[], setup_health_score=95, data={})
        complete_step(progress, 3, health_delta=20)
        assert progress.setup_health_score == 100
        complete_step(progress, 4, health_delta=-500)
        assert progress.setup_health_score == 0

    async def test_last_step_finishes_onboarding(self, db, user):
        progress = await get_or_create_progress(db, user.id)

        complete_step(progress, LAST_STEP)

        assert progress.current_step == LAST_STEP
        assert progress.completed_at is not None

    @pytest.mark.parametrize("step", [0, 9, -1])
    async def test_unknown_steps_are_rejected(self, db, user, step):
        progress = await get_or_create_progress(db, user.id)
        with pytest.raises(OnboardingStepError):
            complete_step(progress, step)
        with pytest.raises(OnboardingStepError):
            update_progress(progress, current_step=step)

    async def test_update_merges_data(self, db, user):
        progress = await get_or_create_progress(db, user.id)

        update_progress(progress, data={"a": 1})
        update_progress(progress, current_step=4, data={"b": 2})

        assert progress.data == {"a": 1, "b": 2}
        assert progress.current_step == 4

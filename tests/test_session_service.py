import pytest

from aily.core.exceptions import NotFoundError, SessionAlreadyEnded, UpstreamTimeout, UpstreamUnavailable
from aily.models.aily import Emotion
from aily.models.knowledge import KnowledgeView
from aily.models.topic import TopicSection
from aily.models.user import User
from aily.services.session_service import SessionService, greeting_prompt, section_progress

from tests.conftest import NOW, transcript_of


@pytest.fixture
def service(cruds, agent, make_aily, make_session):
    cruds["aily"].get.return_value = make_aily()
    cruds["user"].get_user_by_key.return_value = User(
        key="user1", email="maria@aily.dev", name="Maria", created_at=NOW
    )
    cruds["session"].create.return_value = make_session()
    cruds["knowledge"].list_for_agent.return_value = []
    return SessionService(
        user_crud=cruds["user"],
        aily_crud=cruds["aily"],
        knowledge_crud=cruds["knowledge"],
        session_crud=cruds["session"],
        agent=agent,
    )


class TestStartSession:
    @pytest.mark.asyncio
    async def test_greeting_is_stored(self, service, cruds, agent, reply):
        agent.generate.return_value = reply(Emotion.EXCITED, 0.15, "Yay, I'm ready! 😃")

        response = await service.start_session("user1", "aily1", "Variables")

        assert response.session_id == "sess1"
        assert response.initial_message == "Yay, I'm ready! 😃"
        assert response.initial_emotion == Emotion.EXCITED
        assert agent.generate.call_args.args[0] == greeting_prompt("Variables")
        _, messages = cruds["session"].append_messages.call_args.args
        assert len(messages) == 1
        assert messages[0].message == "Yay, I'm ready! 😃"

    @pytest.mark.asyncio
    async def test_greeting_does_not_touch_knowledge(self, service, cruds, agent, reply):
        agent.generate.return_value = reply()

        await service.start_session("user1", "aily1", "Variables")

        cruds["knowledge"].apply_interaction.assert_not_called()
        cruds["aily"].add_xp.assert_not_called()

    @pytest.mark.asyncio
    async def test_timeout_fallback(self, service, agent):
        agent.generate.side_effect = UpstreamTimeout("slow")

        response = await service.start_session("user1", "aily1", "Loops")

        assert "slowly" in response.initial_message
        assert "Loops" in response.initial_message
        assert response.initial_emotion == Emotion.CURIOUS

    @pytest.mark.asyncio
    async def test_unavailable_fallback(self, service, agent):
        agent.generate.side_effect = UpstreamUnavailable("no key")

        response = await service.start_session("user1", "aily1", "Loops")

        assert "unavailable" in response.initial_message

    @pytest.mark.asyncio
    async def test_unknown_aily(self, service, cruds):
        cruds["aily"].get.return_value = None
        with pytest.raises(NotFoundError):
            await service.start_session("user1", "nope", "Loops")
        cruds["session"].create.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_user(self, service, cruds):
        cruds["user"].get_user_by_key.return_value = None
        with pytest.raises(NotFoundError):
            await service.start_session("nope", "aily1", "Loops")


class TestEndSession:
    def test_awards_session_xp(self, service, cruds, make_session, make_aily):
        cruds["session"].get.return_value = make_session(transcript=transcript_of(9))
        cruds["aily"].add_xp.return_value = make_aily(level=0, total_xp=20)

        result = service.end_session("sess1")

        cruds["session"].end.assert_called_once_with("sess1", 2, 20)
        cruds["aily"].add_xp.assert_called_once_with("aily1", 20)
        assert result.duration_minutes == 2
        assert result.xp_earned == 20
        assert result.messages_exchanged == 9
        assert result.leveled_up is False
        cruds["aily"].record_level.assert_not_called()

    def test_level_up(self, service, cruds, make_session, make_aily):
        cruds["session"].get.return_value = make_session(transcript=transcript_of(4))
        cruds["aily"].add_xp.return_value = make_aily(level=1, total_xp=305)
        cruds["aily"].record_level.return_value = make_aily(level=2, total_xp=305)

        result = service.end_session("sess1")

        cruds["aily"].record_level.assert_called_once_with("aily1", 2)
        assert result.leveled_up is True
        assert result.new_level == 2
        assert result.total_xp == 305

    def test_empty_session_still_counts_one_minute(self, service, cruds, make_session, make_aily):
        cruds["session"].get.return_value = make_session()
        cruds["aily"].add_xp.return_value = make_aily(total_xp=10)

        result = service.end_session("sess1")

        assert result.duration_minutes == 1
        assert result.xp_earned == 10

    def test_already_ended(self, service, cruds, make_session):
        cruds["session"].get.return_value = make_session(ended_at=NOW)
        with pytest.raises(SessionAlreadyEnded):
            service.end_session("sess1")
        cruds["aily"].add_xp.assert_not_called()

    def test_lost_end_race(self, service, cruds, make_session):
        cruds["session"].get.return_value = make_session()
        cruds["session"].end.return_value = None
        with pytest.raises(SessionAlreadyEnded):
            service.end_session("sess1")
        cruds["aily"].add_xp.assert_not_called()

    def test_unknown_session(self, service, cruds):
        cruds["session"].get.return_value = None
        with pytest.raises(NotFoundError):
            service.end_session("nope")


class TestTeacherStats:
    def test_without_instance(self, service, cruds):
        cruds["aily"].get_by_user.return_value = None

        stats = service.teacher_stats("user1")

        assert stats.total_sessions == 0
        assert stats.aily_instance is None

    def test_summary(self, service, cruds, make_aily, make_session, make_row):
        cruds["aily"].get_by_user.return_value = make_aily(level=2, total_xp=340)
        ended = [make_session(key="s1", ended_at=NOW), make_session(key="s2", ended_at=NOW)]
        ended[0].duration_minutes = 3
        ended[1].duration_minutes = 4
        cruds["session"].ended_for_agent.return_value = ended
        cruds["session"].count_for_agent.return_value = 3
        cruds["knowledge"].most_taught.return_value = [make_row("Loops", examples_seen=7)]
        cruds["knowledge"].count_for_agent.return_value = 1

        stats = service.teacher_stats("user1")

        assert stats.total_sessions == 2
        assert stats.total_teaching_minutes == 7
        assert stats.total_xp_given == 340
        assert stats.aily_level == 2
        assert stats.most_taught_concepts[0].concept == "Loops"
        assert stats.most_taught_concepts[0].count == 7
        assert stats.aily_instance.session_count == 3


class TestSectionProgress:
    def test_matches_topic_titles(self):
        views = [
            KnowledgeView(concept="loops", stored_level=0.8, understanding_level=0.8,
                          status="known", examples_seen=4, last_reviewed=NOW),
            KnowledgeView(concept="Not a topic", stored_level=0.5, understanding_level=0.5,
                          status="partial", examples_seen=1, last_reviewed=NOW),
        ]

        progress = section_progress(TopicSection.BASICS, views)

        assert progress.progressed_topics == 1
        assert progress.completed_topics == 1
        assert progress.average_understanding == pytest.approx(0.8)
        assert progress.total_topics > 1

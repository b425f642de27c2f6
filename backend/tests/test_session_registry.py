import time

from applicant.session.registry import SessionRegistry


def test_session_registry_register_touch_cleanup():
    registry = SessionRegistry()

    registry.register("s1", company="Acme", interview_mode="technical", questions=[{"question": "Q1"}, {"question": " "}])
    assert registry.asked_questions("s1") == {"Q1"}

    before_touch = float(registry._sessions["s1"]["updated_at"])
    time.sleep(0.01)
    assert registry.touch("s1", answered=True, follow_up="Why that design?") is True
    assert registry.touch("s1", answered=True, follow_up="Why that design?") is True
    assert float(registry._sessions["s1"]["updated_at"]) >= before_touch
    assert registry._sessions["s1"]["answers"] == 2
    assert registry.asked_questions("s1") == {"Q1", "Why that design?"}
    assert registry._sessions["s1"]["asked"].count("Why that design?") == 1

    # ttl=0 clamps internally to >=30s; force old timestamp for deterministic cleanup
    registry._sessions["s1"]["updated_at"] = time.time() - 3600  # test-only direct mutation
    removed = registry.cleanup_inactive(ttl_sec=0)
    assert removed == 1
    assert registry.asked_questions("s1") == set()


def test_session_registry_create_and_unknown_touch():
    registry = SessionRegistry()

    session_id = registry.create(company="Acme", interview_mode="behavioral", questions=[])
    assert registry._sessions[session_id]["company"] == "Acme"
    assert len(registry) == 1

    assert registry.touch("missing") is False
    assert registry.touch(None) is False
    assert registry.asked_questions(None) == set()
    assert registry.cleanup_inactive(ttl_sec=60) == 0

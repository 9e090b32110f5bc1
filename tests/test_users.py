from sqlmodel import select

from db.models import User
from services.users import DUPLICATE_EMAIL_MESSAGE, add_user, authenticate, verify_password


def test_add_user_stores_a_salted_hash(session):
    result = add_user(session, " Ada Nurse ", "Nurse@Example.com", "correct-horse")

    assert result.success
    assert result.user.email == "nurse@example.com"
    assert result.user.fullname == "Ada Nurse"
    stored = session.exec(select(User)).one()
    assert stored.password_hash != "correct-horse"
    assert verify_password("correct-horse", stored.password_hash)


def test_same_password_hashes_differently(session):
    add_user(session, "A", "a@example.com", "correct-horse")
    add_user(session, "B", "b@example.com", "correct-horse")

    hashes = [user.password_hash for user in session.exec(select(User)).all()]
    assert hashes[0] != hashes[1]


def test_duplicate_email_is_rejected_case_insensitively(session):
    add_user(session, "Ada", "nurse@example.com", "correct-horse")

    result = add_user(session, "Imposter", "NURSE@example.com", "other-password")

    assert not result.success
    assert result.message == DUPLICATE_EMAIL_MESSAGE
    assert result.user is None
    assert len(session.exec(select(User)).all()) == 1


def test_authenticate(session):
    add_user(session, "Ada", "nurse@example.com", "correct-horse")

    user = authenticate(session, "  NURSE@example.com", "correct-horse")

    assert user is not None
    assert user.email == "nurse@example.com"
    assert not hasattr(user, "password_hash")
    assert authenticate(session, "nurse@example.com", "Correct-horse") is None
    assert authenticate(session, "nobody@example.com", "correct-horse") is None

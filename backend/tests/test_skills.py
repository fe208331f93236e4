"""Tests for skill normalisation and upsert."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from adopte.database.models import Base
from adopte.errors import ValidationError
from adopte.skills.models import Skill
from adopte.skills.service import (
    _insert_skill,
    get_or_create_skills,
    list_offer_skills,
    normalize_skill_name,
    normalize_skill_names,
    validate_skill_names,
)


class TestNormalizeSkillName:
    def test_special_cases(self):
        assert normalize_skill_name("typescript") == "TypeScript"
        assert normalize_skill_name("  node.JS ") == "Node.js"
        assert normalize_skill_name("c#") == "C#"
        assert normalize_skill_name("postgresql") == "PostgreSQL"

    def test_capitalises_each_word(self):
        assert normalize_skill_name("machine   learning") == "Machine Learning"
        assert normalize_skill_name("REACT") == "React"

    def test_blank(self):
        assert normalize_skill_name("   ") == ""
        assert normalize_skill_name("") == ""


class TestValidateSkillNames:
    def test_accepts_allowed_characters(self):
        validate_skill_names(["C++", "C#", "Node.js", "Objective-C", "Python 3"])

    def test_rejects_invalid_characters(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_skill_names(["Rust", "Java<script>"])
        assert "<" in exc_info.value.message
        assert exc_info.value.status_code == 400


class TestNormalizeSkillNames:
    def test_deduplicates_keeping_order(self):
        assert normalize_skill_names(["react", "Go", "REACT", " go "]) == ["React", "Go"]

    def test_drops_blank_entries(self):
        assert normalize_skill_names(["", "  ", "sql"]) == ["SQL"]


class TestGetOrCreateSkills:
    def test_creates_missing_skills(self, db_session):
        skills = get_or_create_skills(db_session, ["react", "docker"])
        assert [s.name for s in skills] == ["React", "Docker"]
        assert db_session.query(Skill).count() == 2

    def test_differently_cased_duplicate_resolves_to_existing_row(self, db_session):
        first = get_or_create_skills(db_session, ["TypeScript"])[0]
        db_session.commit()
        again = get_or_create_skills(db_session, ["typescript"])[0]
        assert again.id == first.id
        assert db_session.query(Skill).count() == 1

    def test_empty_input(self, db_session):
        assert get_or_create_skills(db_session, []) == []


class TestConcurrentSkillInsert:
    @pytest.fixture
    def sessions(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'skills.db'}")
        Base.metadata.create_all(bind=engine)
        factory = sessionmaker(bind=engine, expire_on_commit=False)
        first, second = factory(), factory()
        yield first, second
        first.close()
        second.close()
        engine.dispose()

    def test_skill_committed_elsewhere_resolves_to_that_row(self, sessions, monkeypatch):
        mine, theirs = sessions
        committed = {}

        def insert_after_other_commit(db, name):
            other = Skill(name=name)
            theirs.add(other)
            theirs.commit()
            committed[name] = other.id
            return _insert_skill(db, name)

        monkeypatch.setattr("adopte.skills.service._insert_skill", insert_after_other_commit)

        [skill] = get_or_create_skills(mine, ["react"])
        mine.commit()

        assert skill.id == committed["React"]
        assert mine.query(Skill).count() == 1

    def test_pending_work_survives_the_clash(self, sessions):
        mine, theirs = sessions
        theirs.add(Skill(name="Go"))
        theirs.commit()

        [python] = get_or_create_skills(mine, ["python"])
        skill = _insert_skill(mine, "Go")
        mine.commit()

        assert skill.name == "Go"
        assert {s.name for s in mine.query(Skill).all()} == {"Go", "Python"}
        assert python.id is not None


class TestListOfferSkills:
    def test_only_skills_used_by_offers(self, db_session, offer, student):
        get_or_create_skills(db_session, ["Haskell"])
        db_session.commit()
        names = [s.name for s in list_offer_skills(db_session)]
        assert names == ["Node.js", "React"]

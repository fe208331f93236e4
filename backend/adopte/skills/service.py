"""Skill normalisation, validation and lookup."""

import re

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from ..errors import ValidationError
from ..offers.models import offer_skills
from .models import Skill

# Canonical spellings for names that plain capitalisation gets wrong
SPECIAL_CASES: dict[str, str] = {
    "typescript": "TypeScript",
    "javascript": "JavaScript",
    "nodejs": "Node.js",
    "node.js": "Node.js",
    "vuejs": "Vue.js",
    "vue.js": "Vue.js",
    "reactjs": "React.js",
    "react.js": "React.js",
    "nextjs": "Next.js",
    "next.js": "Next.js",
    "angularjs": "Angular.js",
    "angular.js": "Angular.js",
    "mongodb": "MongoDB",
    "postgresql": "PostgreSQL",
    "mysql": "MySQL",
    "graphql": "GraphQL",
    "restapi": "REST API",
    "rest api": "REST API",
    "api": "API",
    "css": "CSS",
    "sql": "SQL",
    "nosql": "NoSQL",
    "devops": "DevOps",
    "github": "GitHub",
    "gitlab": "GitLab",
    "aws": "AWS",
    "gcp": "GCP",
    "ios": "iOS",
    "macos": "macOS",
    "centos": "CentOS",
    "php": "PHP",
    "c++": "C++",
    "c#": "C#",
    "matlab": "MATLAB",
    "scss": "SCSS",
    "eslint": "ESLint",
    "junit": "JUnit",
    "testng": "TestNG",
    "springboot": "Spring Boot",
    "spring boot": "Spring Boot",
    "fastapi": "FastAPI",
    "expressjs": "Express.js",
    "express.js": "Express.js",
    "nestjs": "NestJS",
    "nest.js": "NestJS",
    "codeigniter": "CodeIgniter",
    "rubyonrails": "Ruby on Rails",
    "ruby on rails": "Ruby on Rails",
    "aspnet": "ASP.NET",
    ".net": ".NET",
    "dotnet": ".NET",
    "unrealengine": "Unreal Engine",
}

_WHITESPACE = re.compile(r"\s+")
_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9\s+#.\-]")


def normalize_skill_name(name: str) -> str:
    """Return the canonical form of a skill name ("  node.JS " -> "Node.js")."""
    if not name:
        return ""
    cleaned = _WHITESPACE.sub(" ", name.strip())
    if not cleaned:
        return ""
    lowered = cleaned.lower()
    if lowered in SPECIAL_CASES:
        return SPECIAL_CASES[lowered]
    return " ".join(word[0].upper() + word[1:] for word in lowered.split(" ") if word)


def validate_skill_names(names: list[str]) -> None:
    """Raise ValidationError if any name contains characters outside ``[a-zA-Z0-9 +#.-]``."""
    for name in names:
        bad = sorted(set(_INVALID_CHARS.findall(name)))
        if bad:
            raise ValidationError(
                f"Invalid skill name '{name}': contains invalid characters {' '.join(bad)}. "
                "Only letters, numbers, spaces and + # . - are allowed."
            )


def normalize_skill_names(names: list[str]) -> list[str]:
    """Validate, normalise and de-duplicate *names*, keeping first-seen order."""
    validate_skill_names(names)
    seen: dict[str, None] = {}
    for name in names:
        normalized = normalize_skill_name(name)
        if normalized:
            seen.setdefault(normalized, None)
    return list(seen)


def get_or_create_skills(db: Session, names: list[str]) -> list[Skill]:
    """Upsert skills by normalised name and return them in input order."""
    normalized = normalize_skill_names(names)
    if not normalized:
        return []

    existing = {s.name: s for s in db.query(Skill).filter(Skill.name.in_(normalized)).all()}
    skills = []
    for name in normalized:
        skill = existing.get(name)
        if skill is None:
            skill = _insert_skill(db, name)
        skills.append(skill)
    return skills


def _insert_skill(db: Session, name: str) -> Skill:
    """Insert *name* unless another transaction already has, then load the stored row."""
    dialect = db.get_bind().dialect.name
    insert = postgresql_insert if dialect == "postgresql" else sqlite_insert
    db.flush()
    db.execute(insert(Skill.__table__).values(name=name).on_conflict_do_nothing(index_elements=["name"]))
    return db.query(Skill).filter(Skill.name == name).one()


def list_offer_skills(db: Session) -> list[Skill]:
    """Skills required by at least one offer, alphabetically."""
    return (
        db.query(Skill)
        .join(offer_skills, offer_skills.c.skill_id == Skill.id)
        .distinct()
        .order_by(Skill.name.asc())
        .all()
    )

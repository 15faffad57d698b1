from alumni_records.models.base import (
    TENANT_KEY,
    boolean,
    choice,
    counter,
    day,
    decimal,
    integer,
    json_field,
    reference,
    string,
    tenant_field,
    text,
    timestamp,
    user_ref,
)
from alumni_records.schemas.enums import ProficiencyLevel, SalaryType
from alumni_records.services.analytics import annualize_salary, percentage, salary_growth, tracking_rate
from alumni_records.store import EntitySchema, belongs_to, counter_cache, has_many
from alumni_records.store.scopes import date_range, equals, flag, search

CAREER_TIMELINES = EntitySchema(
    name="career_timelines",
    fields={
        "user_id": user_ref(),
        "company": string(nullable=False),
        "title": string(nullable=False),
        "industry": string(100),
        "location": string(),
        "employment_type": string(50),
        "start_date": day(nullable=False),
        "end_date": day(),
        "is_current": boolean(),
        "description": text(),
        "achievements": json_field(default=list),
    },
    relations=(
        belongs_to("user", "users", "user_id"),
        has_many("salaries", "salary_progressions", "career_timeline_id", order_by="effective_date"),
    ),
    scopes={
        "current": flag("is_current"),
        "industry": equals("industry"),
        "started_between": date_range("start_date"),
        "search": search("company", "title"),
    },
)

SALARY_PROGRESSIONS = EntitySchema(
    name="salary_progressions",
    fields={
        "user_id": user_ref(),
        "career_timeline_id": reference("career_timelines", on_delete="SET NULL"),
        "amount": decimal(nullable=False),
        "currency": string(3, nullable=False, default="USD"),
        "salary_type": choice(SalaryType, default=SalaryType.ANNUAL),
        "effective_date": day(nullable=False),
        "is_verified": boolean(),
    },
    relations=(
        belongs_to("user", "users", "user_id"),
        belongs_to("position", "career_timelines", "career_timeline_id"),
    ),
    scopes={
        "type": equals("salary_type"),
        "verified": flag("is_verified"),
        "effective_between": date_range("effective_date"),
    },
    accessors={
        "annual_salary": lambda salary: annualize_salary(salary.amount, salary.salary_type),
    },
)

PROGRAM_EFFECTIVENESS = EntitySchema(
    name="program_effectiveness",
    fields={
        "institution_id": tenant_field(),
        "program_name": string(nullable=False),
        "graduation_year": integer(nullable=False),
        "total_graduates": integer(nullable=False, default=0),
        "tracked_graduates": integer(nullable=False, default=0),
        "employed_graduates": integer(nullable=False, default=0),
        "avg_starting_salary": decimal(),
        "avg_current_salary": decimal(),
        "metrics": json_field(default=dict),
    },
    relations=(belongs_to("institution", "institutions", "institution_id"),),
    scopes={
        "program": equals("program_name"),
        "year": equals("graduation_year"),
    },
    accessors={
        "salary_growth": lambda program: salary_growth(program.avg_starting_salary, program.avg_current_salary),
        "tracking_rate": lambda program: tracking_rate(program.tracked_graduates, program.total_graduates),
        "employment_rate": lambda program: percentage(program.employed_graduates, program.tracked_graduates),
    },
    tenant_key=TENANT_KEY,
    unique_together=(("institution_id", "program_name", "graduation_year"),),
)

CAREER_OUTCOME_SNAPSHOTS = EntitySchema(
    name="career_outcome_snapshots",
    fields={
        "institution_id": tenant_field(),
        "period": string(20, nullable=False),
        "graduation_year": integer(),
        "total_graduates": integer(nullable=False, default=0),
        "tracked_graduates": integer(nullable=False, default=0),
        "employed_count": integer(nullable=False, default=0),
        "median_salary": decimal(),
        "breakdown": json_field(default=dict),
        "captured_at": timestamp(),
    },
    relations=(belongs_to("institution", "institutions", "institution_id"),),
    scopes={
        "period": equals("period"),
        "year": equals("graduation_year"),
    },
    accessors={
        "tracking_rate": lambda snapshot: tracking_rate(snapshot.tracked_graduates, snapshot.total_graduates),
    },
    tenant_key=TENANT_KEY,
)

USER_SKILLS = EntitySchema(
    name="user_skills",
    fields={
        "user_id": user_ref(),
        "skill_name": string(100, nullable=False),
        "proficiency": choice(ProficiencyLevel, default=ProficiencyLevel.INTERMEDIATE),
        "years_experience": integer(),
        "endorsement_count": counter(),
    },
    fillable=("user_id", "skill_name", "proficiency", "years_experience"),
    relations=(
        belongs_to("user", "users", "user_id"),
        has_many("endorsements", "skill_endorsements", "user_skill_id", order_by=("-created_at", "-id")),
    ),
    scopes={
        "proficiency": equals("proficiency"),
        "search": search("skill_name"),
    },
    unique_together=(("user_id", "skill_name"),),
)

SKILL_ENDORSEMENTS = EntitySchema(
    name="skill_endorsements",
    fields={
        "user_skill_id": reference("user_skills"),
        "endorser_id": user_ref(),
        "message": text(),
    },
    relations=(
        belongs_to("skill", "user_skills", "user_skill_id"),
        belongs_to("endorser", "users", "endorser_id"),
    ),
    hooks=counter_cache("user_skills", "user_skill_id", "endorsement_count"),
    unique_together=(("user_skill_id", "endorser_id"),),
)

SCHEMAS = (
    CAREER_TIMELINES,
    SALARY_PROGRESSIONS,
    PROGRAM_EFFECTIVENESS,
    CAREER_OUTCOME_SNAPSHOTS,
    USER_SKILLS,
    SKILL_ENDORSEMENTS,
)

from alumni_records.models.base import (
    TENANT_KEY,
    choice,
    integer,
    json_field,
    string,
    tenant_field,
    timestamp,
    user_ref,
)
from alumni_records.schemas.enums import ImportStatus, ImportType
from alumni_records.services.analytics import duration_minutes, success_rate
from alumni_records.store import EntitySchema, belongs_to
from alumni_records.store.scopes import equals, fixed, recent

DATA_IMPORTS = EntitySchema(
    name="data_imports",
    fields={
        "institution_id": tenant_field(),
        "user_id": user_ref(on_delete="SET NULL"),
        "import_type": choice(ImportType),
        "file_name": string(nullable=False),
        "status": choice(ImportStatus, default=ImportStatus.PENDING),
        "total_records": integer(nullable=False, default=0),
        "created_records": integer(nullable=False, default=0),
        "updated_records": integer(nullable=False, default=0),
        "failed_records": integer(nullable=False, default=0),
        "errors": json_field(default=list),
        "started_at": timestamp(),
        "completed_at": timestamp(),
    },
    relations=(
        belongs_to("institution", "institutions", "institution_id"),
        belongs_to("user", "users", "user_id"),
    ),
    scopes={
        "type": equals("import_type"),
        "status": equals("status"),
        "completed": fixed("status", ImportStatus.COMPLETED),
        "failed": fixed("status", ImportStatus.FAILED),
        "recent": recent(),
    },
    accessors={
        "success_rate": lambda job: success_rate(job.created_records, job.updated_records, job.total_records),
        "duration": lambda job: duration_minutes(job.started_at, job.completed_at),
    },
    tenant_key=TENANT_KEY,
)

SCHEMAS = (DATA_IMPORTS,)

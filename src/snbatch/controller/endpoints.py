"""REST endpoint paths and Table API field lists."""

from __future__ import annotations

SINGLE_INSTALL_PATH: str = "/api/sn_cicd/app_repo/install"
SINGLE_ROLLBACK_PATH: str = "/api/sn_cicd/app_repo/rollback"
BATCH_INSTALL_PATH: str = "/api/sn_cicd/app/batch/install"
BATCH_ROLLBACK_PATH: str = "/api/sn_cicd/app/batch/rollback"
BATCH_RESULTS_PATH: str = "/api/sn_cicd/app/batch/results/{results_id}"
PROGRESS_PATH: str = "/api/sn_cicd/progress/{progress_id}"

TABLE_PATH: str = "/api/now/table/{table}"

STORE_APP_FIELDS: str = (
    "sys_id,"
    "scope,"
    "name,"
    "version,"
    "latest_version,"
    "update_available,"
    "demo_data"
)
PLUGIN_FIELDS: str = "sys_id,id,name,version,active"

TABLE_PAGE_LIMIT: int = 1000

CICD_CREDENTIAL_ALIAS: str = "sn_cicd_spoke.CICD"
BUILD_NAME_PROPERTY: str = "glide.buildname"

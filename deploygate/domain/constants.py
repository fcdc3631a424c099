from pathlib import Path

# Run record storage
DEFAULT_RUNS_ROOT = Path(".deploygate/runs")
RUN_FILENAME = "run.json"
RUN_TEMP_SUFFIX = ".json.tmp"

# Gate step defaults
DEFAULT_MESSAGE = "Pipeline has paused and needs your input before proceeding"
DEFAULT_OK_CAPTION = "Proceed"
DISPLAY_NAME_MAX_LENGTH = 32
GATE_URL_NAME = "deploy"

# Seconds to block while the engine restores suspended gates after a restart
LOAD_EXECUTIONS_TIMEOUT = 60.0

# Outbound callbacks
JSON_CONTENT_TYPE = "application/json;charset=utf-8"
USER_HEADER = "LEO-USER"
RETURN_CODE_FIELD = "rtnCode"
SUCCESS_RETURN_CODE = "000000"
DEFAULT_DEPLOY_PATH = (
    "/api/v1/kubernetes/tenants/{tenant_id}/projects/{project_id}"
    "/leoapps/{app_id}/tpls/{tpl_id}/clusters/{env}/deploy"
)

# Form field that switches a proceed request into a phase 1 deploy submission
DEPLOY_SWITCH_FIELD = "deploy"

# Fields a phase 1 submission must carry (all non-blank)
REQUIRED_DEPLOY_FIELDS = (
    "tenantId",
    "projectId",
    "appId",
    "tplId",
    "env",
    "userId",
    "userName",
    "nodeId",
)

"""Default configuration values for envdeck."""

# Project layout
PROJECT_FILE_NAME = "envdeck.yaml"
STATE_DIR_NAME = ".envdeck"
DEFAULT_ENVIRONMENT_ENV_VAR = "ENVDECK_ENV_NAME"

# Progress tracking cadence (seconds)
DEFAULT_INITIAL_DELAY = 3.0
DEFAULT_ENVIRONMENT_DELAY = 5.0
DEFAULT_PROGRESS_DELAY = 10.0

# Environment config paths
PROVISION_PARAMETERS_CONFIG_PATH = "provision.parameters"
PROVISION_OUTPUTS_CONFIG_PATH = "provision.outputs"
DEVCENTER_CONFIG_PATH = "platform.config"
DEVCENTER_NAME_PATH = f"{DEVCENTER_CONFIG_PATH}.name"
DEVCENTER_PROJECT_PATH = f"{DEVCENTER_CONFIG_PATH}.project"
DEVCENTER_CATALOG_PATH = f"{DEVCENTER_CONFIG_PATH}.catalog"
DEVCENTER_ENV_TYPE_PATH = f"{DEVCENTER_CONFIG_PATH}.environmentType"
DEVCENTER_ENV_DEFINITION_PATH = f"{DEVCENTER_CONFIG_PATH}.environmentDefinition"
DEVCENTER_USER_PATH = f"{DEVCENTER_CONFIG_PATH}.user"
DEVCENTER_ENDPOINT_PATH = f"{DEVCENTER_CONFIG_PATH}.endpoint"

# Field name -> environment config path
DEVCENTER_CONFIG_PATHS: dict[str, str] = {
    "name": DEVCENTER_NAME_PATH,
    "project": DEVCENTER_PROJECT_PATH,
    "catalog": DEVCENTER_CATALOG_PATH,
    "environment_type": DEVCENTER_ENV_TYPE_PATH,
    "environment_definition": DEVCENTER_ENV_DEFINITION_PATH,
    "user": DEVCENTER_USER_PATH,
    "endpoint": DEVCENTER_ENDPOINT_PATH,
}

# ADE tags stamped on the ARM deployments an environment runs
DEPLOYMENT_TAG_DEVCENTER_NAME = "AdeDevCenterName"
DEPLOYMENT_TAG_DEVCENTER_PROJECT = "AdeProjectName"
DEPLOYMENT_TAG_ENVIRONMENT_TYPE = "AdeEnvironmentTypeName"
DEPLOYMENT_TAG_ENVIRONMENT_NAME = "AdeEnvironmentName"

"""Constants for the Nginx Operator."""

# API Group
API_GROUP = "operator.example.com"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_NGINX_OPERATOR = "NginxOperator"
KIND_DEPLOYMENT = "Deployment"

# Plurals
PLURAL_NGINX_OPERATORS = "nginxoperators"
PLURAL_DEPLOYMENTS = "deployments"

# Managed Deployment template
DEPLOYMENT_MANIFEST = "nginx_deployment.yaml"

# Field Manager / controller name
FIELD_MANAGER = "nginx-operator"

# Bumped on the owning NginxOperator when its Deployment drifts, so kopf re-runs its handler
ANNOTATION_DEPLOYMENT_DRIFT = f"{API_GROUP}/deployment-drift"

# Condition Types
COND_OPERATOR_DEGRADED = "OperatorDegraded"

# Condition Statuses
STATUS_TRUE = "True"
STATUS_FALSE = "False"
STATUS_UNKNOWN = "Unknown"

# Condition Reasons
REASON_OPERATOR_SUCCEEDED = "OperatorSucceeded"
REASON_RESOURCE_NOT_AVAILABLE = "OperatorResourceNotAvailable"
REASON_DEPLOYMENT_NOT_AVAILABLE = "OperandDeploymentNotAvailable"
REASON_UPDATE_DEPLOYMENT_FAILED = "OperandUpdateDeploymentFailed"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_DEPLOYMENT_CREATED = "DeploymentCreated"
EVENT_REASON_DEPLOYMENT_UPDATED = "DeploymentUpdated"
EVENT_REASON_VALIDATE_FAILED = "ValidateFailed"

"""Configuration settings for the Autoscaling Buffer Controller."""

# Object identities
PRIORITY_CLASS_NAME = "autoscaling-buffer"
BUFFER_APP_NAME = "autoscaling-buffer"
APP_LABEL = "app"

# Priority class policy
BUFFER_PRIORITY_VALUE = -100
PRIORITY_CLASS_DESCRIPTION = "This priority class is to be used by the autoscaling buffer pod only"

# Provenance label set on every object this controller owns
PROVIDER_LABEL_KEY = "toolchain.dev.openshift.com/provider"
PROVIDER_LABEL_VALUE = "codeready-toolchain"

# Node role labels
LABEL_NODE_ROLE_WORKER = "node-role.kubernetes.io/worker"
LABEL_NODE_ROLE_INFRA = "node-role.kubernetes.io/infra"

# Buffer pod template
BUFFER_IMAGE = "gcr.io/google_containers/pause-amd64:3.0"
BUFFER_REPLICAS = 1
TERMINATION_GRACE_PERIOD_SECONDS = 0

# The buffer size is 80% of allocatable memory of a worker node
BUFFER_SIZE_NODE_SIZE_RATIO = 0.8

# Optimistic concurrency
MAX_CONFLICT_RETRIES = 10

# Controller settings
DEFAULT_NAMESPACE = "toolchain-member-operator"
RECONCILE_INTERVAL_SECONDS = 60
WATCH_TIMEOUT_SECONDS = 300
REQUEST_TIMEOUT_SECONDS = 30
ERROR_BACKOFF_SECONDS = 5

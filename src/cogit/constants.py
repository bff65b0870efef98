"""Constants for cogit."""

# Repository marker directory
COGIT_DIR = ".cogit"

# Layout (inside COGIT_DIR)
OBJECTS_DIR = "objects"
REFS_DIR = "refs"
HEADS_DIR = "heads"
HEAD_FILE = "HEAD"
STAGING_FILE = "index.json"
CONFIG_FILE = "config.yaml"
EMBEDDINGS_DIR = "embeddings"

# Single branch
DEFAULT_BRANCH = "main"

# Names starting with this marker are never snapshotted
HIDDEN_PREFIX = "."

# Schema version written into every encoded document
SCHEMA_VERSION = 1

# Seconds to wait for the ref lock before giving up
LOCK_TIMEOUT_SECONDS = 30

# Leading context lines kept before the first divergence in a hunk
DIFF_CONTEXT_LINES = 3

# Version
COGIT_VERSION = "0.1.0"

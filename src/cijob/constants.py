"""Fixed names, paths and endpoints used by the driver."""

STEP_INSTALL = "install"
STEP_BUILD = "build"
STEP_RUN = "run"
STEP_ALL = "all"
STEPS = (STEP_INSTALL, STEP_BUILD, STEP_RUN, STEP_ALL)

BARE_HOST_MARKERS = ("bare-host", "travis")
STATIC_ANALYSIS_MARKERS = ("static-analysis", "coverity")
BARE_HOST = BARE_HOST_MARKERS[0]

SOURCE_ROOT_MARKER = "configure"
VERSION_FILE = "VERSION"
BUILD_DIR = "build"

# CI environment variables
CI_INDICATOR_VAR = "TRAVIS"
CI_EVENT_TYPE_VAR = "TRAVIS_EVENT_TYPE"
CI_JOB_NUMBER_VAR = "TRAVIS_JOB_NUMBER"
CI_PULL_REQUEST_VAR = "TRAVIS_PULL_REQUEST"
SCAN_TOKEN_VAR = "COV_TOKEN"
CRON_EVENT_TYPE = "cron"

# The key and IV are stored per repository under names derived from this id.
CREDENTIAL_ID = "6a6fe747ff7b"
CREDENTIAL_KEY_TEMPLATE = "encrypted_{}_key"
CREDENTIAL_IV_TEMPLATE = "encrypted_{}_iv"
EXPORTED_KEY_VAR = "trav_key"
EXPORTED_IV_VAR = "trav_iv"

FORWARDED_RUN_VARS = (
    CI_INDICATOR_VAR,
    CI_PULL_REQUEST_VAR,
    EXPORTED_KEY_VAR,
    EXPORTED_IV_VAR,
)

# Isolated environment
CONTAINER_NAME = "brotest"
CONTAINER_MOUNT_PATH = "/bro"
CONTAINER_SHELL = "sh"

# Driver inside the container: its package is mounted read-only under
# DRIVER_MOUNT_ROOT and its requirements are installed with the profile's pip.
DRIVER_MODULE = "cijob"
DRIVER_MOUNT_ROOT = "/opt/cijob"
DRIVER_REQUIREMENTS = (
    "click>=8.0",
    "cryptography>=3.1",
    "PyYAML>=6.0",
    "requests>=2.25",
    "rich>=12.0",
)

# Test suites
UNIT_SUITE_DIR = "testing/btest"
UNIT_SUITE_RUNNER = "../../aux/btest/btest"
EXTERNAL_SUITE_DIR = "testing/external"
PUBLIC_CORPUS_DIR = "bro-testing"
PRIVATE_CORPUS_DIR = "bro-testing-private"
DIAG_LOG = "bro-testing/diag.log"
DIAG_FAILED_MARKER = "... failed"
DIAG_SKIPPED_MARKER = "... not available, skipped"

# Private corpus
PRIVATE_KEY_BLOB_URL = "https://www.bro.org/static/travis-ci/travis_key.enc"
PRIVATE_CORPUS_REPO = "ssh://git@git.bro.org/bro-testing-private"
PRIVATE_IDENTITY_NAME = "cijob_private_corpus"
PRIVATE_CORPUS_HOST = "git.bro.org"
IDENTITY_FILE_MODE = 0o600
SSH_DIR_MODE = 0o700

# Static-analysis service
SCAN_PROJECT = "Bro"
SCAN_EMAIL = "bro-commits-internal@bro.org"
SCAN_TOOLS_URL = "https://scan.coverity.com/download/cxx/linux64"
SCAN_SUBMIT_URL = "https://scan.coverity.com/builds"
SCAN_TOOLS_ARCHIVE = "coverity_tool.tgz"
SCAN_TOOLS_DIR = "coverity-tools"
SCAN_TOOLS_GLOB = "cov-analysis*"
SCAN_INTERMEDIATE_DIR = "cov-int"
SCAN_UPLOAD_ARCHIVE = "myproject.tgz"

DEFAULT_BUILD_JOBS = 2
DEFAULT_SCAN_BUILD_JOBS = 4
DEFAULT_UNIT_TEST_JOBS = 4
DEFAULT_CONFIG_FILE = ".cijob.yml"

USAGE = """\
usage: cijob [OPTIONS] STEP ENVIRONMENT

  STEP is a build step:
    install: install prerequisites
    build:   build the project
    run:     run the tests
    all:     do all of the above

  ENVIRONMENT is a platform profile (run inside a container),
  'bare-host' to run without a container, or 'static-analysis'
  to run a static-analysis scan."""

"""Centralized constants for Drupal site conversion."""

# Target upstream
TARGET_UPSTREAM_GIT_REMOTE_URL = "https://github.com/pantheon-upstreams/drupal-recommended.git"
TARGET_UPSTREAM_REMOTE_NAME = "target-upstream"
TARGET_UPSTREAM_BRANCH = "master"
TARGET_GIT_BRANCH = "conversion"
DEFAULT_GIT_BRANCH = "master"
PUSH_REMOTE_NAME = "origin"

# Layout
WEB_ROOT = "web"
MODULES_SUBDIR = "modules"
THEMES_SUBDIR = "themes"
LIBRARIES_SUBDIR = "libraries"
CORE_SUBDIR = "core"
CONTRIB_SUBDIR = "contrib"
CUSTOM_SUBDIR = "custom"
SITES_ALL = ("sites", "all")
SITES_DEFAULT = ("sites", "default")
CONFIG_SUBDIR = "config"
SETTINGS_PHP = "settings.php"
HTACCESS = ".htaccess"
LIBRARIES_BACKUP_DIR = "libraries-backup"

# Files
PANTHEON_YML = "pantheon.yml"
COMPOSER_JSON = "composer.json"
INFO_FILE_SUFFIX = ".info.yml"

# Info file keys written by the drupal.org packaging script
PACKAGING_MARKER_KEYS = ("project", "version")

# Manifest
CONTRIB_VENDOR = "drupal"
UNKNOWN_VERSION_CONSTRAINT = "*"

# Packages pinned by the target upstream itself
SEEDED_CORE_PACKAGES: dict[str, str] = {
    "composer/installers": "^1.9",
    "cweagans/composer-patches": "^1.7",
    "drupal/core-composer-scaffold": "^9.2",
    "drupal/core-recommended": "^9.2",
    "drush/drush": "^10",
    "pantheon-systems/drupal-integrations": "^9",
    "pantheon-upstreams/upstream-configuration": "*",
}

CORE_PACKAGE_NAMES = frozenset(
    {
        "composer/installers",
        "drupal/core",
        "drupal/drupal",
        "drupal-composer/drupal-scaffold",
        "webflo/drupal-core-strict",
        "webflo/drupal-core-require-dev",
        *SEEDED_CORE_PACKAGES,
    }
)
CORE_PACKAGE_PREFIXES = ("drupal/core-",)

# Front-end libraries with a known Composer package
KNOWN_LIBRARY_PACKAGES: dict[str, tuple[str, str]] = {
    "chosen": ("harvesthq/chosen", "^1.8"),
    "colorbox": ("jackmoore/colorbox", "^1.6"),
    "dompdf": ("dompdf/dompdf", "^1.0"),
    "dropzone": ("enyo/dropzone", "^5.7"),
    "masonry": ("desandro/masonry", "^4.2"),
    "mpdf": ("mpdf/mpdf", "^8.0"),
    "phpmailer": ("phpmailer/phpmailer", "^6.5"),
    "select2": ("select2/select2", "^4.0"),
}

# Remote commands run after the branch is pushed
DRUSH_UPDB = "updb -y"
DRUSH_CACHE_REBUILD = "cr"

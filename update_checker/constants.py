"""Constants and configuration for App Update Checker."""

# Version
__version__ = "0.3.0"

# Paths
DEFAULT_APPLICATIONS_DIR = "/Applications/"
APPLICATIONS_DIR_ENV = "APP_CHECKER_APPLICATIONS_DIR"
LOG_LEVEL_ENV = "APP_CHECKER_LOG_LEVEL"
BUNDLE_SUFFIX = ".app"
CONTENTS_DIR = "Contents"
METADATA_EXTENSION = ".plist"
APP_STORE_RECEIPT = ("_MASReceipt", "receipt")

# Info.plist keys
VERSION_KEY = "CFBundleShortVersionString"
BUILD_KEY = "CFBundleVersion"
IDENTIFIER_KEY = "CFBundleIdentifier"
FEED_URL_KEY = "SUFeedURL"

# Timeouts (seconds)
APP_STORE_TIMEOUT = 15.0
SPARKLE_TIMEOUT = 30.0
HOMEBREW_TIMEOUT = 60

# Mac App Store lookup
ITUNES_LOOKUP_URL = "https://itunes.apple.com/lookup"

# Sparkle appcast XML namespace
SPARKLE_NAMESPACE = "http://www.andymatuschak.org/xml-namespaces/sparkle"

# Checker chain, tried in this order
DEFAULT_METHOD_ORDER = ["app_store", "sparkle", "homebrew"]

# Directory watching
WATCH_DEBOUNCE_SECONDS = 1.0

# Homebrew cask index cache lifetime
HOMEBREW_CACHE_TTL = 300.0

# HTTP Headers
DEFAULT_USER_AGENT = "App-Update-Checker/{}".format(__version__)

# Concurrent checking
MAX_CONCURRENT_CHECKS = 5

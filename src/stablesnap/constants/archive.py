"""Archive container constants."""

DEFAULT_OUTPUT_PATH = "output.tar.zst"
DEFAULT_COMPRESSION_LEVEL = 3
MIN_COMPRESSION_LEVEL = 1

# Suffix of the hidden temp file an archive is streamed into before the
# atomic rename onto the destination path.
PARTIAL_SUFFIX = ".partial"


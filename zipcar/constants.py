import zipfile


# Key encodings by CID version
KEY_BASE_V0 = "base58btc"
KEY_BASE_V1 = "base32"

# Roots are stored newline-separated in the archive comment
ROOTS_SEPARATOR = "\n"
COMMENT_ENCODING = "utf-8"
MAX_COMMENT_BYTES = 65535

# Entry defaults (DEFLATE=8, STORE=0); names are the CLI --compression choices
DEFAULT_COMPRESSION = zipfile.ZIP_DEFLATED
COMPRESSION_METHODS = {
    "deflate": zipfile.ZIP_DEFLATED,
    "store": zipfile.ZIP_STORED,
}
ENTRY_UNIX_MODE = 0o120000

# Block hashing for newly created CIDs
DEFAULT_HASH = "sha2-256"
DEFAULT_CODEC = "raw"

"""Shared constants used across the duplicate remover."""

# Soundminer keeps all asset metadata in one flat table
DEFAULT_TABLE = "justinmetadata"

DEFAULT_ORDER_FILE = "SMDupe_order.txt"
DEFAULT_TAGS_FILE = "SMDupe_tags.txt"

DEFAULT_BATCH_SIZE = 500

WORKING_COPY_SUFFIX = "_thinned"
ARCHIVE_SUFFIX = "_dupes"

DEFAULT_ORDER = (
    "duration DESC",
    "channels DESC",
    "sampleRate DESC",
    "bitDepth DESC",
    "BWDate ASC",
    "scannedDate ASC",
)

# Filename fragments left behind by common processing plugins
DEFAULT_TAGS = (
    "-Reverse_",
    "-RVRS_",
    "-A2sA_",
    "-Delays_",
    "-ZXN5_",
    "-NYCT_",
    "-PiSh_",
    "-PnT2_",
    "-7eqa_",
    "-Alt7S_",
    "-AVrP_",
    "-X2mA_",
    "-PnTPro_",
    "-M2DN_",
    "-PSh_",
    "-ASMA_",
    "-TmShft_",
    "-Dn_",
    "-DVerb_",
    "-spce_",
    "-RX7Cnct_",
    "-AVSt",
    "-VariFi",
    "-DEC4_",
    "-VSPD_",
    "-6030_",
    "-NORM_",
    "-AVrT_",
    "-RING_",
)

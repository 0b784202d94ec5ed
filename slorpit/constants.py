# Reserved root key linking the catalog stream; kept distinct from PDF-defined keys
CATALOG_KEY = "/SlorpitCatalog"
# Catalog stream key holding the file payload streams in append order
PAYLOADS_KEY = "/Payloads"

CATALOG_TYPE = "/Metadata"
CATALOG_SUBTYPE = "/SlorpitArchive"
PAYLOAD_TYPE = "/EmbeddedFile"

# Catalog format version written by this implementation; advisory only
FORMAT_VERSION = "1.1"
LEGACY_FORMAT_VERSION = "1.0"


# Codec IDs (0=none, 1=deflate/zlib, which PDF calls FlateDecode)
CODEC_NONE = 0
CODEC_DEFLATE = 1

DEFAULT_CODEC_ID = CODEC_DEFLATE
DEFAULT_COMPRESSION_LEVEL = 9

# Safety bound on the inflated catalog to avoid decompression bombs
MAX_CATALOG_UNCOMPRESSED = 128 * 1024 * 1024  # 128 MiB
MAX_ENTRY_SIZE = 2**63 - 1  # largest size an entry may claim

PDF_MIN_VERSION = "1.5"  # object streams

# Listing page geometry (US Letter, points)
PAGE_WIDTH = 612
PAGE_HEIGHT = 792
LISTING_FONT = "/Courier"
LISTING_ROWS_PER_PAGE = 54

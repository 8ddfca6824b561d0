"""
Configuration constants to replace magic numbers throughout java2igcse
"""

# Output formatting constants
DEFAULT_INDENT_SIZE = 3  # IGCSE mark schemes indent by three spaces
ASSIGNMENT_ARROW = "←"
COMMENT_PREFIX = "// "
STRING_CONCAT_OPERATOR = "&"

# Array indexing constants
SOURCE_INDEX_BASE = 0  # Java/TypeScript arrays are 0-indexed
TARGET_INDEX_BASE = 1  # IGCSE arrays are 1-indexed
ARRAY_INDEX_OFFSET = TARGET_INDEX_BASE - SOURCE_INDEX_BASE
DEFAULT_ARRAY_SIZE = "SIZE"  # Upper bound used when an array length is unknown

# Parser configuration constants
MAX_CONSECUTIVE_PARSE_ERRORS = 10  # Recovery loop gives up after this many failures in a row
MAX_INPUT_SIZE = 1024 * 1024  # Inputs above this size get a warning
MAX_LINE_LENGTH = 500  # Lines above this length get an info warning
ERROR_CONTEXT_CHARS = 40  # Characters of context quoted around a parse failure
MAX_EXPRESSION_DEPTH = 50  # Deeper expression nesting is kept as written

# Lowering configuration constants
MAX_LOWERING_DEPTH = 100  # Deeper CST nesting is replaced by a placeholder

# TypeScript frontend (lark)
TYPESCRIPT_GRAMMAR_FILE = "grammar.lark"
TYPESCRIPT_START_RULE = "program"

# Language selection
JAVA_LANGUAGE = "java"
TYPESCRIPT_LANGUAGE = "typescript"
SUPPORTED_LANGUAGES = (JAVA_LANGUAGE, TYPESCRIPT_LANGUAGE)
TYPESCRIPT_FILE_EXTENSIONS = (".ts", ".tsx", ".js", ".mjs")
JAVA_FILE_EXTENSIONS = (".java",)

# Literal constants
STRING_QUOTE_CHAR = '"'
CHAR_QUOTE_CHAR = "'"
BOOLEAN_TRUE_LITERAL = "true"
BOOLEAN_FALSE_LITERAL = "false"
PSEUDOCODE_TRUE = "TRUE"
PSEUDOCODE_FALSE = "FALSE"

# Fallback type for anything the type table does not know
DEFAULT_FALLBACK_TYPE = "STRING"

# File encoding constants
DEFAULT_FILE_ENCODING = "utf-8"

# IR dump location (JAVA2IGCSE_DUMP_IR)
IR_DUMP_DIR = "ir_dump"
IR_DUMP_FILE = "after_lowering.sexpr"

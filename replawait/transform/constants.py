"""Constants shared across the top-level await rewrite.

Centralizes the wrapper text and the tree-sitter node kinds the rules key on,
so the wrapper, the walker and the rules cannot drift apart.
"""

# The snippet is placed between these two strings before parsing
WRAP_PREFIX = "(async () => { "
WRAP_SUFFIX = " })()"

# Nested scopes whose await/return/declarations belong to themselves.
# "function" is the pre-0.21 grammar name of "function_expression".
OPAQUE_NODE_TYPES = frozenset(
    {
        "function",
        "function_expression",
        "generator_function",
        "arrow_function",
        "method_definition",
        "field_definition",
        "class_static_block",
    }
)

# Declarations that hoist to the enclosing function wherever they are nested
FUNCTION_DECLARATION_TYPES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
    }
)

DECLARATION_TYPES = frozenset({"variable_declaration", "lexical_declaration"})

# Keyword of the function-scoped declaration kind
FUNCTION_SCOPED_KEYWORD = "var"

# Environment overrides for TransformConfig
ENV_RETURN_LAST_EXPRESSION = "REPLAWAIT_RETURN_LAST_EXPRESSION"
ENV_CACHE_SIZE = "REPLAWAIT_CACHE_SIZE"

DEFAULT_CACHE_SIZE = 128

from ircmacro.macro_datatypes import EvaluationContext, ExpansionResult, IdentifierCall, RecursionLimit
from ircmacro.macro_parser import IdentifierParser, build_evaluation_stack
from ircmacro.macro_aliases import AliasStore, ScriptAlias
from ircmacro.macro_host import MacroHost, identifier_method, address_mask
from ircmacro.macro_config import MacroConfig, load_config

__all__ = [
    "EvaluationContext", "ExpansionResult", "IdentifierCall", "RecursionLimit",
    "IdentifierParser", "build_evaluation_stack",
    "AliasStore", "ScriptAlias",
    "MacroHost", "identifier_method", "address_mask",
    "MacroConfig", "load_config",
]

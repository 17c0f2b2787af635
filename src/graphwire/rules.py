from graphwire._internal.rules import UNSET, Rule

__all__ = ["UNSET", "Rule"]

from .resolver import Expression, ExpressionResolver, is_expression

__all__ = ["Expression", "ExpressionResolver", "is_expression"]

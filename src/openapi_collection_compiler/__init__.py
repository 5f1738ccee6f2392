"""OpenAPI/Swagger to Postman collection compiler package."""

from __future__ import annotations

from .cli import main
from .compiler import CompileRun, compile_document, run_compile

__all__ = ["CompileRun", "compile_document", "main", "run_compile"]

from glam.compiler.codegen.template import RENDER_FUNC, SCOPE_FUNC, TemplateCodegen

__all__ = ["RENDER_FUNC", "SCOPE_FUNC", "TemplateCodegen"]

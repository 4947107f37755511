"""Compiled templates and their execution."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import CodeType, TracebackType

from stencil.exceptions import (
    CompileError,
    RuntimeEvaluationError,
    StencilError,
    TemplateNotFoundError,
)

from ._codegen import EMIT_NAME, INCLUDE_NAME, GeneratedCode, SourceLine, generate
from ._escape import EscapeFunction, escape_html, to_text
from ._nodes import Node

# (path, locals, caller_context) -> rendered partial
type IncludeFunction = Callable[[object, object, Mapping[str, object]], str]

PUBLIC_INCLUDE_NAME = "include"


def _includes_unavailable(
    path: object, _locals: object, _context: Mapping[str, object]
) -> str:
    msg = "No template loader is configured for includes"
    raise TemplateNotFoundError(msg, name=str(path))


@dataclass(frozen=True, slots=True, kw_only=True)
class CompiledTemplate:
    """An executable template.

    Immutable once created. Each ``execute`` call runs the code object in a
    fresh namespace, so renders never share state.

    Attributes:
        key: Identity key (name and content fingerprint) the template was
            compiled for.
        name: Template name.
        source_length: Length of the template source in characters.
        compiled_at: When compilation finished.
    """

    key: str
    name: str
    source_length: int
    compiled_at: datetime
    code: CodeType = field(repr=False, compare=False)
    generated: GeneratedCode = field(repr=False, compare=False)

    @property
    def generated_source(self) -> str:
        """The Python source the template compiled to."""
        return self.generated.source

    def execute(
        self,
        context: Mapping[str, object] | None = None,
        *,
        escape: EscapeFunction = escape_html,
        include: IncludeFunction | None = None,
        builtins: Mapping[str, object] | None = None,
    ) -> str:
        """Render the template against a context.

        Args:
            context: Values bound as names in template code. Not mutated.
            escape: Escape function for escaped output.
            include: Partial renderer for include directives. Without one,
                includes raise TemplateNotFoundError.
            builtins: Replacement builtins namespace for template code.

        Returns:
            The rendered text.

        Raises:
            RuntimeEvaluationError: If template code raises.
            StencilError: Errors from included templates, unchanged.
        """
        caller_context: Mapping[str, object] = context if context is not None else {}
        render_include = include if include is not None else _includes_unavailable
        output: list[str] = []
        append = output.append

        def emit(value: object, escaped: bool) -> None:  # noqa: FBT001
            if value is None:
                return
            append(escape(value) if escaped else to_text(value))

        def include_partial(path: object, locals_: object = None) -> str:
            return render_include(path, locals_, caller_context)

        namespace: dict[str, object] = dict(caller_context)
        namespace[PUBLIC_INCLUDE_NAME] = include_partial
        namespace[EMIT_NAME] = emit
        namespace[INCLUDE_NAME] = include_partial
        if builtins is not None:
            namespace["__builtins__"] = dict(builtins)

        try:
            exec(self.code, namespace)  # noqa: S102
        except TemplateNotFoundError as e:
            if e.template is not None:
                raise
            origin = self._locate(e.__traceback__)
            raise TemplateNotFoundError(
                e.message,
                name=e.name,
                template=self.name,
                line=origin.line if origin else None,
                column=origin.column if origin else None,
            ) from e
        except StencilError:
            raise
        except Exception as e:
            origin = self._locate(e.__traceback__)
            msg = f"{type(e).__name__}: {e}"
            raise RuntimeEvaluationError(
                msg,
                cause=e,
                template=self.name,
                fragment=origin.fragment if origin else None,
                line=origin.line if origin else None,
                column=origin.column if origin else None,
            ) from e

        return "".join(output)

    def _locate(self, traceback: TracebackType | None) -> SourceLine | None:
        """Find the template origin of the innermost frame in this template."""
        lineno: int | None = None
        while traceback is not None:
            if traceback.tb_frame.f_code.co_filename == self.generated.filename:
                lineno = traceback.tb_lineno
            traceback = traceback.tb_next
        return self.generated.origin(lineno)


def compile_nodes(
    nodes: list[Node],
    *,
    name: str,
    key: str,
    source_length: int,
) -> CompiledTemplate:
    """Generate and compile Python code for a node sequence.

    Args:
        nodes: Nodes produced by ``build``.
        name: Template name.
        key: Identity key stored on the compiled template.
        source_length: Length of the template source.

    Returns:
        The compiled template.

    Raises:
        CompileError: If the generated code is not valid Python, or blocks
            are unbalanced.
    """
    generated = generate(nodes, name=name)
    try:
        code = compile(generated.source, generated.filename, "exec")
    except SyntaxError as e:
        origin = generated.origin(e.lineno)
        msg = f"Invalid template code: {e.msg}"
        raise CompileError(
            msg,
            template=name,
            fragment=origin.fragment if origin else e.text,
            line=origin.line if origin else None,
            column=origin.column if origin else None,
        ) from e

    return CompiledTemplate(
        key=key,
        name=name,
        source_length=source_length,
        compiled_at=datetime.now(tz=UTC),
        code=code,
        generated=generated,
    )

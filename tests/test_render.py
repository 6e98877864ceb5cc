"""Tests for the render subsystem: validation, dispatch and the two adapters."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import graphviz
import pytest

from diagrammatic.config.models import DiagrammaticConfig, MermaidSettings
from diagrammatic.extract.models import DiagramKind
from diagrammatic.render import (
    GraphvizRenderer,
    MermaidCliRenderer,
    RenderDispatcher,
    RenderError,
    RenderRequest,
    RenderValidationError,
    create_renderers,
    dot_command,
    find_mmdc,
    make_responsive,
    validate,
)
from diagrammatic.render.base import Renderer

from conftest import FakeRenderer


def _dot(name="g", option="dot", fmt="svg"):
    return RenderRequest(kind=DiagramKind.dot, name=name, option=option, format=fmt)


def _mermaid(name="m", option="default", fmt="png"):
    return RenderRequest(kind=DiagramKind.mermaid, name=name, option=option, format=fmt)


# ── validate ──────────────────────────────────────────────────────────


class TestValidate:
    def test_accepts_allowed(self):
        validate(_dot(option="neato", fmt="png"))
        validate(_mermaid(option="forest", fmt="svg"))

    def test_rejects_unknown_engine(self):
        with pytest.raises(RenderValidationError, match="Valid options: dot, circo"):
            validate(_dot(option="sideways"))

    def test_rejects_unknown_theme(self):
        with pytest.raises(RenderValidationError, match="theme"):
            validate(_mermaid(option="neon"))

    def test_rejects_format_for_kind(self):
        with pytest.raises(RenderValidationError, match="format"):
            validate(_mermaid(fmt="jpg"))

    def test_is_a_value_error(self):
        assert issubclass(RenderValidationError, ValueError)


class TestRenderError:
    def test_wraps_cause(self):
        cause = RuntimeError("boom")
        err = RenderError(DiagramKind.dot, "flow", cause)
        assert err.__cause__ is cause
        assert "flow" in str(err)
        assert "boom" in str(err)
        assert not err.timeout

    def test_timeout_message(self):
        err = RenderError(DiagramKind.mermaid, "seq", asyncio.TimeoutError(), timeout=True)
        assert "timed out" in str(err)


# ── RenderDispatcher ──────────────────────────────────────────────────


class TestDispatcher:
    @pytest.mark.asyncio
    async def test_success(self, dispatcher):
        outcome = await dispatcher.render("digraph { a }", _dot())
        assert outcome.ok
        assert outcome.data == b"<svg:dot:g>"

    @pytest.mark.asyncio
    async def test_validation_failure_skips_renderer(self, dispatcher, fake_renderer):
        outcome = await dispatcher.render("digraph { a }", _dot(option="bogus"))
        assert not outcome.ok
        assert "bogus" in outcome.error
        assert fake_renderer.calls == []

    @pytest.mark.asyncio
    async def test_exception_becomes_err(self):
        dispatcher = RenderDispatcher({DiagramKind.dot: FakeRenderer(fail={"bad"})})
        outcome = await dispatcher.render("digraph { a }", _dot(name="bad"))
        assert not outcome.ok
        assert "syntax error in bad" in outcome.error
        assert not outcome.timed_out

    @pytest.mark.asyncio
    async def test_timeout_becomes_err(self):
        dispatcher = RenderDispatcher({DiagramKind.dot: FakeRenderer(slow={"slow"})}, timeout=0.05)
        outcome = await dispatcher.render("digraph { a }", _dot(name="slow"))
        assert not outcome.ok
        assert outcome.timed_out

    @pytest.mark.asyncio
    async def test_missing_renderer(self):
        dispatcher = RenderDispatcher({})
        outcome = await dispatcher.render("graph TD", _mermaid())
        assert not outcome.ok
        assert "mermaid" in outcome.error

    @pytest.mark.asyncio
    async def test_render_all_isolates_failures_and_keeps_order(self):
        dispatcher = RenderDispatcher(
            {DiagramKind.dot: FakeRenderer(fail={"two"}, slow={"one"}, delay=0.05)}, timeout=1.0
        )
        jobs = [("s1", _dot(name="one")), ("s2", _dot(name="two")), ("s3", _dot(name="three"))]
        outcomes = await dispatcher.render_all(jobs)
        assert [o.request.name for o in outcomes] == ["one", "two", "three"]
        assert [o.ok for o in outcomes] == [True, False, True]

    @pytest.mark.asyncio
    async def test_render_all_bounded_concurrency(self):
        class CountingRenderer(Renderer):
            def __init__(self):
                self.active = 0
                self.peak = 0

            async def render(self, source, request):
                self.active += 1
                self.peak = max(self.peak, self.active)
                await asyncio.sleep(0.01)
                self.active -= 1
                return b"ok"

        renderer = CountingRenderer()
        dispatcher = RenderDispatcher({DiagramKind.dot: renderer}, max_concurrency=2)
        outcomes = await dispatcher.render_all([("s", _dot(name=f"g{i}")) for i in range(6)])
        assert all(o.ok for o in outcomes)
        assert renderer.peak == 2


# ── Graphviz ──────────────────────────────────────────────────────────


class TestMakeResponsive:
    def test_pt_dimensions(self):
        svg = '<?xml version="1.0"?>\n<svg width="100pt" height="50pt" xmlns="http://www.w3.org/2000/svg"><g/></svg>'
        out = make_responsive(svg)
        assert 'viewBox="0 0 134 67"' in out
        assert 'width="100%"' in out
        assert 'height="auto"' in out
        assert 'style="max-width: 134px;"' in out
        assert out.endswith("<g/></svg>")

    def test_existing_viewbox_kept(self):
        svg = '<svg width="62pt" height="116pt" viewBox="0.00 0.00 62.00 116.00"><g/></svg>'
        out = make_responsive(svg)
        assert out.count("viewBox=") == 1
        assert 'viewBox="0.00 0.00 62.00 116.00"' in out
        assert 'style="max-width: 83px;"' in out

    def test_px_dimensions_unscaled(self):
        out = make_responsive('<svg width="200px" height="80px"></svg>')
        assert 'viewBox="0 0 200 80"' in out
        assert 'style="max-width: 200px;"' in out

    def test_inner_stroke_width_untouched(self):
        svg = '<svg width="10pt" height="10pt"><path stroke-width="2"/></svg>'
        assert 'stroke-width="2"' in make_responsive(svg)

    def test_no_dimensions_unchanged(self):
        svg = '<svg viewBox="0 0 10 10"></svg>'
        assert make_responsive(svg) == svg


def _fake_dot(stdout=b"", returncode=0, stderr=b"", hang=False):
    """Patchable create_subprocess_exec standing in for the ``dot`` binary."""
    process = MagicMock()
    process.returncode = returncode
    process.wait = AsyncMock(return_value=returncode)

    async def _communicate(data=None):
        if hang:
            await asyncio.sleep(30)
        return stdout, stderr

    process.communicate = AsyncMock(side_effect=_communicate)
    return AsyncMock(return_value=process), process


class TestDotCommand:
    def test_engine_and_format_flags(self):
        assert dot_command("neato", "pdf")[1:] == ["-Kneato", "-Tpdf"]

    def test_rejects_unknown_engine(self):
        with pytest.raises(ValueError, match="engine"):
            dot_command("sideways", "svg")


class TestGraphvizRenderer:
    @pytest.mark.asyncio
    async def test_pipes_source_through_dot(self):
        run, process = _fake_dot(stdout=b"%PDF-1.4")
        with patch("diagrammatic.render.graphviz_renderer.asyncio.create_subprocess_exec", run):
            data = await GraphvizRenderer().render("digraph { a }", _dot(option="neato", fmt="pdf"))
        assert data == b"%PDF-1.4"
        assert run.call_args.args[1:] == ("-Kneato", "-Tpdf")
        process.communicate.assert_awaited_once_with(b"digraph { a }")

    @pytest.mark.asyncio
    async def test_svg_made_responsive(self):
        run, _ = _fake_dot(stdout=b'<svg width="30pt" height="30pt"></svg>')
        with patch("diagrammatic.render.graphviz_renderer.asyncio.create_subprocess_exec", run):
            data = await GraphvizRenderer().render("digraph { a }", _dot())
        assert b'width="100%"' in data

    @pytest.mark.asyncio
    async def test_svg_raw_when_disabled(self):
        raw = b'<svg width="30pt" height="30pt"></svg>'
        run, _ = _fake_dot(stdout=raw)
        with patch("diagrammatic.render.graphviz_renderer.asyncio.create_subprocess_exec", run):
            data = await GraphvizRenderer(responsive_svg=False).render("digraph { a }", _dot())
        assert data == raw

    @pytest.mark.asyncio
    async def test_syntax_error_carries_stderr(self):
        run, _ = _fake_dot(returncode=1, stderr=b"Error: syntax error in line 1 near '}'")
        with patch("diagrammatic.render.graphviz_renderer.asyncio.create_subprocess_exec", run):
            with pytest.raises(graphviz.CalledProcessError, match="syntax error"):
                await GraphvizRenderer().render("digraph {", _dot())

    @pytest.mark.asyncio
    async def test_missing_binary(self):
        run = AsyncMock(side_effect=FileNotFoundError("dot"))
        with patch("diagrammatic.render.graphviz_renderer.asyncio.create_subprocess_exec", run):
            with pytest.raises(graphviz.ExecutableNotFound):
                await GraphvizRenderer().render("digraph { a }", _dot())

    @pytest.mark.asyncio
    async def test_timeout_kills_hung_layout(self):
        run, process = _fake_dot(hang=True)
        dispatcher = RenderDispatcher({DiagramKind.dot: GraphvizRenderer()}, timeout=0.05)
        loop = asyncio.get_running_loop()
        started = loop.time()
        with patch("diagrammatic.render.graphviz_renderer.asyncio.create_subprocess_exec", run):
            outcome = await dispatcher.render("digraph { a -> a }", _dot())
        assert outcome.timed_out
        assert loop.time() - started < 5
        process.kill.assert_called_once()
        process.wait.assert_awaited()


# ── Mermaid CLI ───────────────────────────────────────────────────────


class TestFindMmdc:
    def test_configured_command_wins(self):
        assert find_mmdc("node /opt/mmdc.js") == ["node", "/opt/mmdc.js"]

    def test_mmdc_on_path(self):
        with patch("diagrammatic.render.mermaid_renderer.shutil.which", side_effect=lambda c: f"/usr/bin/{c}"):
            assert find_mmdc() == ["/usr/bin/mmdc"]

    def test_npx_fallback(self):
        with patch(
            "diagrammatic.render.mermaid_renderer.shutil.which",
            side_effect=lambda c: "/usr/bin/npx" if c == "npx" else None,
        ):
            assert find_mmdc() == ["npx", "--yes", "@mermaid-js/mermaid-cli"]

    def test_nothing_available(self):
        with patch("diagrammatic.render.mermaid_renderer.shutil.which", return_value=None):
            with pytest.raises(FileNotFoundError, match="Mermaid CLI not found"):
                find_mmdc()


def _fake_process(returncode=0, stderr=b"", output=b"PNGDATA"):
    """Patchable create_subprocess_exec that writes the -o file like mmdc would."""

    async def _exec(*cmd, **kwargs):
        if returncode == 0 and output is not None:
            out = Path(cmd[cmd.index("-o") + 1])
            out.write_bytes(output)
        process = MagicMock()
        process.returncode = returncode
        process.communicate = AsyncMock(return_value=(b"", stderr))
        return process

    return AsyncMock(side_effect=_exec)


class TestMermaidCliRenderer:
    def test_build_command(self):
        renderer = MermaidCliRenderer(MermaidSettings(command="mmdc", width=800, height=600, scale=2))
        cmd = renderer.build_command(Path("in.mmd"), Path("out.png"), Path("p.json"), "dark", "png")
        assert cmd[0] == "mmdc"
        assert cmd[cmd.index("-t") + 1] == "dark"
        assert cmd[cmd.index("-b") + 1] == "white"
        assert cmd[cmd.index("-w") + 1] == "800"
        assert cmd[cmd.index("-H") + 1] == "600"
        assert cmd[cmd.index("-s") + 1] == "2"
        assert cmd[cmd.index("-p") + 1] == "p.json"

    def test_scale_only_for_png(self):
        renderer = MermaidCliRenderer(MermaidSettings(command="mmdc"))
        cmd = renderer.build_command(Path("in.mmd"), Path("out.svg"), Path("p.json"), "default", "svg")
        assert "-s" not in cmd

    @pytest.mark.asyncio
    async def test_render_reads_output(self):
        renderer = MermaidCliRenderer(MermaidSettings(command="mmdc"))
        with patch("diagrammatic.render.mermaid_renderer.asyncio.create_subprocess_exec", _fake_process()) as run:
            data = await renderer.render("graph TD\n  A --> B", _mermaid())
        assert data == b"PNGDATA"
        cmd = run.call_args.args
        input_path = Path(cmd[cmd.index("-i") + 1])
        assert input_path.name == "input.mmd"
        assert not input_path.exists()  # temp dir cleaned up

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises_with_stderr(self):
        renderer = MermaidCliRenderer(MermaidSettings(command="mmdc"))
        fake = _fake_process(returncode=1, stderr=b"Parse error on line 2")
        with patch("diagrammatic.render.mermaid_renderer.asyncio.create_subprocess_exec", fake):
            with pytest.raises(RuntimeError, match="Parse error on line 2"):
                await renderer.render("graph TD\n  A -->", _mermaid())

    @pytest.mark.asyncio
    async def test_missing_output_raises(self):
        renderer = MermaidCliRenderer(MermaidSettings(command="mmdc"))
        with patch(
            "diagrammatic.render.mermaid_renderer.asyncio.create_subprocess_exec",
            _fake_process(output=None),
        ):
            with pytest.raises(RuntimeError, match="no output"):
                await renderer.render("graph TD", _mermaid())


def test_create_renderers_from_config():
    renderers = create_renderers(DiagrammaticConfig())
    assert isinstance(renderers[DiagramKind.dot], GraphvizRenderer)
    assert isinstance(renderers[DiagramKind.mermaid], MermaidCliRenderer)

from __future__ import annotations

import asyncio

from conftest import FakeCompiler, RefusingOverlay
from mathoverlay.adapters.extractor import InlineMathExtractor
from mathoverlay.adapters.overlay import ReportOverlay
from mathoverlay.core.exceptions import ExtractionError


class CountingExtractor(InlineMathExtractor):
    def __init__(self) -> None:
        super().__init__()
        self.calls: list[float] = []

    def extract(self, buffer):
        self.calls.append(asyncio.get_running_loop().time())
        return super().extract(buffer)


class BrokenExtractor:
    def extract(self, buffer):
        raise ExtractionError("parser unavailable")


def test_unchanged_snippet_is_not_reprocessed_after_unrelated_edit(
    make_renderer, compiler, norg_buffer
) -> None:
    overlay = ReportOverlay()
    renderer = make_renderer(overlay=overlay, min_length=3)
    buffer = norg_buffer("Energy $x^2$ here")

    async def scenario():
        renderer.handle_event("buf_enter", buffer)
        await renderer.scheduler.wait_idle(buffer)
        placement = renderer.registry.get(buffer, next(iter(renderer.registry.identities(buffer))))

        buffer.set_text("Energy $x^2$ here\nand some more prose")
        renderer.handle_event("text_changed", buffer)
        await renderer.scheduler.wait_idle(buffer)
        return placement

    placement = asyncio.run(scenario())

    assert compiler.calls == 1
    assert len(overlay.placements) == 1
    assert renderer.registry.get(buffer, placement.identity) is placement
    assert overlay.placements[0].close_calls == 0


def test_reconcile_is_idempotent(make_renderer, compiler, norg_buffer) -> None:
    overlay = ReportOverlay()
    renderer = make_renderer(overlay=overlay)
    buffer = norg_buffer("$a+b$ then $|c_1|$")

    async def scenario():
        first = await renderer.scheduler.reconcile(buffer)
        second = await renderer.scheduler.reconcile(buffer)
        return first, second

    first, second = asyncio.run(scenario())

    assert len(first.created) == 2
    assert second.created == []
    assert second.closed == []
    assert sorted(second.kept) == sorted(first.created)
    assert compiler.calls == 2
    assert all(placement.close_calls == 0 for placement in overlay.placements)


def test_reconcile_diffs_snippet_sets(make_renderer, norg_buffer) -> None:
    overlay = ReportOverlay()
    renderer = make_renderer(overlay=overlay)
    buffer = norg_buffer("$a+b$ and $c+d$")

    async def scenario():
        await renderer.scheduler.reconcile(buffer)
        before = dict(renderer.registry.state(buffer).placements)
        buffer.set_text("$a+b$ and $e+f$")
        result = await renderer.scheduler.reconcile(buffer)
        return before, result

    before, result = asyncio.run(scenario())

    after = renderer.registry.state(buffer).placements
    current = {snippet.identity for snippet in InlineMathExtractor().extract(buffer)}
    assert set(after) == current
    shared = set(before) & set(after)
    assert len(shared) == 1
    for identity in shared:
        assert after[identity] is before[identity]
    assert len(result.closed) == 1
    assert len(result.created) == 1
    closed = [placement for placement in overlay.placements if placement.closed]
    assert len(closed) == 1


def test_burst_of_changes_triggers_a_single_pass(make_renderer, norg_buffer) -> None:
    extractor = CountingExtractor()
    renderer = make_renderer(extractor=extractor, debounce_ms=50)
    buffer = norg_buffer("$x^2$")

    async def scenario() -> float:
        loop = asyncio.get_running_loop()
        last = 0.0
        for _ in range(5):
            renderer.handle_event("text_changed", buffer)
            last = loop.time()
            await asyncio.sleep(0.005)
        assert renderer.scheduler.is_pending(buffer)
        await renderer.scheduler.wait_idle(buffer)
        return last

    last_event = asyncio.run(scenario())

    assert len(extractor.calls) == 1
    assert extractor.calls[0] >= last_event + 0.05 - 0.005


def test_short_snippets_are_skipped(make_renderer, compiler, norg_buffer) -> None:
    renderer = make_renderer(min_length=3)
    buffer = norg_buffer("$ab$ and $abc$")

    result = asyncio.run(renderer.scheduler.reconcile(buffer))

    assert len(result.skipped) == 1
    assert len(result.created) == 1
    assert compiler.calls == 1


def test_compile_failure_is_isolated_and_not_retried(
    make_renderer, emitter, norg_buffer
) -> None:
    compiler = FakeCompiler(fail_when=lambda source: "broken" in source)
    renderer = make_renderer(compiler_override=compiler)
    buffer = norg_buffer("$\\broken{x}$ $x^2$")

    async def scenario():
        first = await renderer.scheduler.reconcile(buffer)
        second = await renderer.scheduler.reconcile(buffer)
        buffer.set_text("$\\broken{y}$ $x^2$")
        third = await renderer.scheduler.reconcile(buffer)
        return first, second, third

    first, second, third = asyncio.run(scenario())

    assert len(first.created) == 1
    assert len(first.failed) == 1
    assert second.failed == {}
    assert len(second.skipped) == 1
    assert len(third.failed) == 1
    broken_compiles = [source for source in compiler.sources if "broken" in source]
    assert len(broken_compiles) == 2
    assert len(emitter.warnings) == 2
    assert "Undefined control sequence" in emitter.warnings[0]


def test_extraction_errors_abort_the_pass_and_report_once(
    make_renderer, emitter, norg_buffer
) -> None:
    renderer = make_renderer(extractor=BrokenExtractor())
    buffer = norg_buffer("$x^2$")

    async def scenario():
        return [await renderer.scheduler.reconcile(buffer) for _ in range(3)]

    results = asyncio.run(scenario())

    assert all(result.aborted for result in results)
    assert len(emitter.warnings) == 1
    assert "parser unavailable" in emitter.warnings[0]


def test_overlay_refusal_is_reported_and_not_retried(
    make_renderer, compiler, emitter, norg_buffer
) -> None:
    renderer = make_renderer(overlay=RefusingOverlay())
    buffer = norg_buffer("$x^2$")

    async def scenario():
        first = await renderer.scheduler.reconcile(buffer)
        second = await renderer.scheduler.reconcile(buffer)
        return first, second

    first, second = asyncio.run(scenario())

    assert len(first.failed) == 1
    assert second.failed == {}
    assert renderer.registry.identities(buffer) == set()
    assert compiler.calls == 1
    assert any("Overlay could not be placed" in message for message in emitter.warnings)


def test_disable_during_compile_discards_results(make_renderer, norg_buffer) -> None:
    overlay = ReportOverlay()
    compiler = FakeCompiler(delay=0.05)
    renderer = make_renderer(overlay=overlay, compiler_override=compiler, debounce_ms=0)
    buffer = norg_buffer("$x^2$")

    async def scenario():
        renderer.handle_event("text_changed", buffer)
        await asyncio.sleep(0.01)
        assert renderer.scheduler.is_busy(buffer)
        renderer.command("disable", buffer)
        await renderer.scheduler.wait_idle(buffer)

    asyncio.run(scenario())

    assert compiler.calls == 1
    assert overlay.placements == []
    assert renderer.registry.identities(buffer) == set()


def test_change_during_running_pass_triggers_a_rerun(make_renderer, norg_buffer) -> None:
    compiler = FakeCompiler(delay=0.05)
    renderer = make_renderer(compiler_override=compiler, debounce_ms=0)
    buffer = norg_buffer("$x^2$")

    async def scenario():
        renderer.handle_event("text_changed", buffer)
        await asyncio.sleep(0.01)
        assert renderer.scheduler.is_busy(buffer)
        buffer.set_text("$x^2$\n$y^2$")
        renderer.handle_event("text_changed", buffer)
        await renderer.scheduler.wait_idle(buffer)

    asyncio.run(scenario())

    assert len(renderer.registry.identities(buffer)) == 2
    assert compiler.calls == 2


def test_nothing_is_scheduled_while_disabled(make_renderer, compiler, norg_buffer) -> None:
    renderer = make_renderer(render_on_enter=False)
    buffer = norg_buffer("$x^2$")

    async def scenario():
        renderer.handle_event("text_changed", buffer)
        assert not renderer.scheduler.is_pending(buffer)
        result = await renderer.scheduler.reconcile(buffer)
        assert result.discarded

    asyncio.run(scenario())
    assert compiler.calls == 0

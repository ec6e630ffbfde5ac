"""End-to-end tests through the application context."""

import random

import httpx

from worldlines.client import ApiDataAccess, LocalDataAccess
from worldlines.context import AppContext
from worldlines.interaction.clock import Clock
from worldlines.interaction.navigation import (
    KEY_BACK,
    KEY_DOWN,
    KEY_ENTER,
    KEY_ESCAPE,
    KEY_RIGHT,
)
from worldlines.interaction.transition import PHASE_ORDER, Phase
from worldlines.models import ViewMode, WorldlineInsert


class TestStartup:
    def test_initial_reading_is_first_worldline(self, context):
        assert context.sequencer.display.reading == "0.000000"
        assert context.navigation.view is ViewMode.ROOT
        assert context.cache.load_failed is False

    def test_unreachable_service_gives_empty_shell(self, config):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://test")
        with AppContext.create(config, ApiDataAccess(client), clock=Clock()) as ctx:
            assert ctx.cache.load_failed is True
            assert ctx.navigation.visible_items() == []
            assert ctx.navigation.handle_key(KEY_DOWN) is True
            assert ctx.navigation.handle_key(KEY_ENTER) is False
            assert ctx.navigation.selected_index == 0

    def test_malformed_service_gives_empty_shell(self, config):
        def handler(request):
            if request.url.path == "/api/status":
                return httpx.Response(200, json={"status": "OK"})
            if request.url.path == "/api/temporal-fields":
                return httpx.Response(200, json=[{"id": "alpha", "name": "a"}])
            return httpx.Response(200, text="<html></html>")

        client = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://test")
        with AppContext.create(config, ApiDataAccess(client), clock=Clock()) as ctx:
            assert ctx.cache.worldlines == []
            assert ctx.cache.events == []
            assert ctx.cache.start_year == config.timeline.start_year
            assert ctx.navigation.handle_key(KEY_ENTER) is False

    def test_close_cancels_running_transition(self, context):
        context.navigation.handle_key(KEY_DOWN)
        context.navigation.handle_key(KEY_ENTER)
        context.close()
        assert not context.sequencer.active
        assert context.clock.idle


    def test_close_stops_viewport_animations(self, context):
        context.viewport.set_zoom(3.0)
        context.clock.advance(32)
        context.navigation.handle_key(KEY_RIGHT)
        context.navigation.handle_key("+")
        assert not context.clock.idle
        context.close()
        assert context.clock.idle
        offset = context.viewport.active_strip.scroll_offset
        context.clock.advance(1000)
        assert context.viewport.active_strip.scroll_offset == offset


class TestEndToEnd:
    def test_alpha_beta_scenario(self, config, tmp_db):
        tmp_db.upsert_worldline(
            WorldlineInsert(id="alpha", name="α", percentage=0.0, color="rgba(255, 102, 0, 0.8)")
        )
        tmp_db.upsert_worldline(
            WorldlineInsert(id="beta", name="β", percentage=1.130205, color="rgba(136, 255, 136, 0.8)")
        )
        clock = Clock()
        with AppContext.create(
            config, LocalDataAccess(tmp_db), clock=clock, rng=random.Random(7),
        ) as ctx:
            phases = []
            ctx.sequencer.subscribe(phases.append)
            nav = ctx.navigation

            nav.handle_key(KEY_DOWN)
            nav.handle_key(KEY_ENTER)
            assert nav.view is ViewMode.BRANCH
            assert nav.worldline.id == "beta"

            clock.run_until_idle()
            assert phases == list(PHASE_ORDER) + [Phase.IDLE]
            assert ctx.sequencer.display.reading == "1.130205"

            nav.handle_key(KEY_ESCAPE)
            assert nav.view is ViewMode.ROOT
            assert nav.selected_index == 0

    def test_over_rest(self, config, api_client):
        # The fixture owns the TestClient, so the context is not closed here.
        ctx = AppContext.create(
            config, ApiDataAccess(api_client), clock=Clock(), rng=random.Random(7),
        )
        nav = ctx.navigation
        nav.handle_key(KEY_DOWN)
        nav.handle_key(KEY_ENTER)
        ctx.clock.run_until_idle()
        nav.handle_key(KEY_ENTER)
        assert nav.modal_event.id == "april2020"
        ctx.clock.run_until_idle()
        assert ctx.sequencer.display.reading == "1.040402"
        nav.handle_key(KEY_ESCAPE)
        assert nav.modal_event is None
        nav.handle_key(KEY_BACK)
        assert nav.view is ViewMode.ROOT

    def test_admin_mutation_reaches_navigation(self, context):
        context.admin.new_worldline.id = "epsilon"
        context.admin.new_worldline.name = "ε"
        context.admin.new_worldline.percentage = 5.0
        assert context.admin.add_worldline() is True
        assert [w.id for w in context.navigation.visible_items()][-1] == "epsilon"

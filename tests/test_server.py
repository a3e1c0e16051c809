"""
ServerBuilder end to end: build order, controller mounting, per-request
resolution and error forwarding, driven through httpx.
"""

import asyncio

import pytest

from tether.application import Application
from tether.config import ServerConfig
from tether.constants import TYPE
from tether.controller import GET, POST, controller, bind_controller
from tether.controller.metadata import MetadataStore, MethodDescriptor
from tether.di import ClassProvider, Container, FactoryProvider
from tether.middleware import ErrorHandler
from tether.routing import HTTPMethod
from tether.server import ServerBuilder


STORE = MetadataStore()


class Counter:
    def __init__(self):
        self.value = 0

    def bump(self) -> int:
        self.value += 1
        return self.value


@controller("/foo", store=STORE)
class Foo:
    instances = []

    def __init__(self, counter: Counter):
        self.counter = counter
        Foo.instances.append(self)

    @GET("/")
    async def index(self, request, response, next):
        return {"instance": id(self), "hits": self.counter.bump()}

    @GET("/sync")
    def sync_value(self, request, response, next):
        return "plain"

    @POST("/echo")
    async def echo(self, request, response, next):
        return await request.json()

    @GET("/{item_id:int}")
    async def item(self, request, response, next):
        return {"item_id": request.params["item_id"]}

    @GET("/manual")
    async def manual(self, request, response, next):
        response.status_code(202).text("written")
        return "ignored"

    @GET("/nothing")
    async def nothing(self, request, response, next):
        return None

    @GET("/zero")
    def zero(self, request, response, next):
        return 0

    @GET("/fails")
    async def fails(self, request, response, next):
        await asyncio.sleep(0)
        raise RuntimeError("async boom")

    @GET("/raises")
    def raises(self, request, response, next):
        raise RuntimeError("sync boom")


class Bar:
    """Has method metadata but no controller descriptor."""

    def list(self, request, response, next):
        return "bar"


STORE.define_method(Bar, MethodDescriptor(method=HTTPMethod.GET, path="/", key="list"))


@pytest.fixture(autouse=True)
def reset_instances():
    Foo.instances.clear()


def make_container() -> Container:
    container = Container(scope="app")
    container.register(ClassProvider(Counter, scope="singleton"))
    bind_controller(container, Foo, store=STORE)
    return container


class TestBuildOrder:

    def test_config_controllers_then_error_config(self):
        container = make_container()
        seen = []

        def config(app):
            seen.append(("config", len(app.stack)))

        def error_config(app):
            seen.append(("error", len(app.stack)))

        builder = ServerBuilder(container, metadata=STORE)
        builder.set_config(config).set_error_config(error_config)
        app = builder.build()

        assert isinstance(app, Application)
        # One mount layer for Foo between the two callbacks
        assert seen == [("config", 0), ("error", 1)]

    def test_setters_are_chainable_and_replace(self):
        builder = ServerBuilder(make_container(), metadata=STORE)
        calls = []
        assert builder.set_config(lambda app: calls.append("first")) is builder
        builder.set_config(lambda app: calls.append("second"))
        assert builder.set_error_config(lambda app: None) is builder
        builder.build()
        assert calls == ["second"]

    def test_config_callback_exception_aborts_build(self):
        builder = ServerBuilder(make_container(), metadata=STORE)

        def broken(app):
            raise RuntimeError("bad config")

        builder.set_config(broken)
        with pytest.raises(RuntimeError, match="bad config"):
            builder.build()

    def test_build_twice_registers_twice(self):
        builder = ServerBuilder(make_container(), metadata=STORE)
        builder.build()
        app = builder.build()
        assert app.routes().count(("GET", "/foo")) == 2

    def test_uses_supplied_application(self):
        app = Application(name="custom")
        built = ServerBuilder(make_container(), app=app, metadata=STORE).build()
        assert built is app

    def test_routes_listed_under_controller_path(self):
        app = ServerBuilder(make_container(), metadata=STORE).build()
        routes = app.routes()
        assert ("GET", "/foo") in routes
        assert ("POST", "/foo/echo") in routes
        assert ("GET", "/foo/{item_id:int}") in routes

    def test_root_path_prefixes_mounts(self):
        config = ServerConfig(root_path="/api")
        app = ServerBuilder(make_container(), metadata=STORE, config=config).build()
        assert ("GET", "/api/foo") in app.routes()

    def test_bar_without_controller_descriptor_is_skipped(self):
        container = make_container()
        container.register(ClassProvider(Bar, scope="transient", token=TYPE.CONTROLLER), tag="Bar")
        app = ServerBuilder(container, metadata=STORE).build()
        assert all(not path.startswith("/bar") for _, path in app.routes())
        assert len(app.stack) == 1

    def test_controller_without_known_type_is_skipped(self):
        container = make_container()
        container.register(
            FactoryProvider(lambda: object(), scope="transient", token=TYPE.CONTROLLER, name="anon"),
            tag="anon",
        )
        app = ServerBuilder(container, metadata=STORE).build()
        assert len(app.stack) == 1


class TestDispatch:

    @pytest.mark.asyncio
    async def test_immediate_and_deferred_values(self, asgi_client):
        app = ServerBuilder(make_container(), metadata=STORE).build()
        async with asgi_client(app) as client:
            resp = await client.get("/foo")
            assert resp.status_code == 200
            assert resp.json()["hits"] == 1

            resp = await client.get("/foo/sync")
            assert resp.text == "plain"
            assert resp.headers["content-type"].startswith("text/plain")

            resp = await client.post("/foo/echo", json={"a": [1, 2]})
            assert resp.json() == {"a": [1, 2]}

            resp = await client.get("/foo/7")
            assert resp.json() == {"item_id": 7}

    @pytest.mark.asyncio
    async def test_fresh_controller_per_request(self, asgi_client):
        app = ServerBuilder(make_container(), metadata=STORE).build()
        async with asgi_client(app) as client:
            first = (await client.get("/foo")).json()
            second = (await client.get("/foo")).json()

        assert len(Foo.instances) == 2
        assert Foo.instances[0] is not Foo.instances[1]
        # Singleton dependency shared across both instances
        assert (first["hits"], second["hits"]) == (1, 2)

    @pytest.mark.asyncio
    async def test_written_response_not_overwritten(self, asgi_client):
        app = ServerBuilder(make_container(), metadata=STORE).build()
        async with asgi_client(app) as client:
            resp = await client.get("/foo/manual")
        assert resp.status_code == 202
        assert resp.text == "written"

    @pytest.mark.asyncio
    async def test_none_result_leaves_empty_response(self, asgi_client):
        app = ServerBuilder(make_container(), metadata=STORE).build()
        async with asgi_client(app) as client:
            resp = await client.get("/foo/nothing")
        assert resp.status_code == 200
        assert resp.content == b""

    @pytest.mark.asyncio
    async def test_falsy_non_none_value_is_written(self, asgi_client):
        app = ServerBuilder(make_container(), metadata=STORE).build()
        async with asgi_client(app) as client:
            resp = await client.get("/foo/zero")
        assert resp.text == "0"

    @pytest.mark.asyncio
    async def test_unknown_route_is_404(self, asgi_client):
        app = ServerBuilder(make_container(), metadata=STORE).build()
        async with asgi_client(app) as client:
            resp = await client.get("/missing")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "ROUTE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_middleware_runs_and_errors_reach_error_handlers(self, asgi_client):
        seen_paths = []
        errors = []

        async def observe(request, response, next):
            seen_paths.append(request.path)
            await next()

        async def capture(error, request, response, next):
            errors.append(error)
            response.json({"caught": str(error)}, status=500)

        app = (
            ServerBuilder(make_container(), metadata=STORE)
            .set_config(lambda app: app.use(observe))
            .set_error_config(lambda app: app.use_error(capture))
            .build()
        )

        async with asgi_client(app) as client:
            ok = await client.get("/foo")
            assert ok.status_code == 200
            assert errors == []

            failed = await client.get("/foo/fails")
            raised = await client.get("/foo/raises")

        assert seen_paths == ["/foo", "/foo/fails", "/foo/raises"]
        assert failed.json() == {"caught": "async boom"}
        assert raised.json() == {"caught": "sync boom"}
        assert [str(e) for e in errors] == ["async boom", "sync boom"]

    @pytest.mark.asyncio
    async def test_default_error_handler_hides_detail(self, asgi_client):
        app = (
            ServerBuilder(make_container(), metadata=STORE)
            .set_error_config(lambda app: app.use_error(ErrorHandler()))
            .build()
        )
        async with asgi_client(app) as client:
            resp = await client.get("/foo/fails")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error"}

    @pytest.mark.asyncio
    async def test_request_scope_container(self, asgi_client):
        class RequestToken:
            pass

        @controller("/scoped", store=STORE)
        class Scoped:
            def __init__(self, token: RequestToken):
                self.token = token

            @GET("/")
            async def show(self, request, response, next):
                same = await request.state["container"].resolve_async(RequestToken)
                return {"same": same is self.token}

        container = Container(scope="app")
        container.register(ClassProvider(RequestToken, scope="request"))
        bind_controller(container, Scoped, store=STORE)

        app = ServerBuilder(container, metadata=STORE, config=ServerConfig(request_scope=True)).build()
        async with asgi_client(app) as client:
            resp = await client.get("/scoped")
        assert resp.json() == {"same": True}

    @pytest.mark.asyncio
    async def test_head_served_by_get_route(self, asgi_client):
        app = ServerBuilder(make_container(), metadata=STORE).build()
        async with asgi_client(app) as client:
            get = await client.get("/foo/sync")
            head = await client.head("/foo/sync")
        assert head.status_code == 200
        assert head.content == b""
        assert head.headers["content-length"] == get.headers["content-length"] == "5"


class TestRegistrationNames:

    @pytest.mark.asyncio
    async def test_controller_registered_under_other_name(self, asgi_client):
        container = Container(scope="app")
        container.register(ClassProvider(Counter, scope="singleton"))
        tag = bind_controller(container, Foo, name="foo-alias", store=STORE)
        assert tag == "foo-alias"

        app = ServerBuilder(container, metadata=STORE).build()
        async with asgi_client(app) as client:
            resp = await client.get("/foo")
        assert resp.status_code == 200
        assert resp.json()["hits"] == 1

    @pytest.mark.asyncio
    async def test_registration_store_differs_from_builder_store(self, asgi_client):
        container = Container(scope="app")
        container.register(ClassProvider(Counter, scope="singleton"))
        # Tag differs from the descriptor name
        container.register(ClassProvider(Foo, scope="transient", token=TYPE.CONTROLLER), tag="registered-foo")

        app = ServerBuilder(container, metadata=STORE).build()
        async with asgi_client(app) as client:
            resp = await client.get("/foo/sync")
        assert resp.status_code == 200
        assert resp.text == "plain"


class HandleStub:
    def __init__(self, name, target):
        self.name = name
        self.target = target


class MinimalContainer:
    """Exposes only enumeration and named lookup."""

    def __init__(self, **controllers):
        self.controllers = controllers

    def get_all(self, kind):
        assert kind == TYPE.CONTROLLER
        return [HandleStub(name, type(instance)) for name, instance in self.controllers.items()]

    async def get_named(self, kind, name):
        return self.controllers[name]


STORE_MINIMAL = MetadataStore()


@controller("/ping", store=STORE_MINIMAL)
class Ping:

    @GET("/")
    def pong(self, request, response, next):
        return "pong"


class TestMinimalContainer:

    @pytest.mark.asyncio
    async def test_builds_and_serves_without_shutdown(self, asgi_client):
        container = MinimalContainer(ping=Ping())
        builder = ServerBuilder(container, metadata=STORE_MINIMAL)
        app = builder.build()

        async with asgi_client(app) as client:
            resp = await client.get("/ping")
        assert resp.text == "pong"
        await app.shutdown()


STORE_ORDER = MetadataStore()


@controller("/a", store=STORE_ORDER)
class Wildcard:

    @GET("/{x}")
    def any_item(self, request, response, next):
        return {"by": "wildcard", "x": request.params["x"]}


@controller("/a", store=STORE_ORDER)
class Specific:

    @GET("/b")
    def item_b(self, request, response, next):
        return {"by": "specific"}


def ordered_container(*classes) -> Container:
    container = Container(scope="app")
    for cls in classes:
        bind_controller(container, cls, store=STORE_ORDER)
    return container


def mounted_names(app):
    return [layer.handlers[-1].stack[0].handlers[-1].name for layer in app.stack]


class TestMountOrder:

    @pytest.mark.asyncio
    async def test_first_registered_controller_wins(self, asgi_client):
        container = ordered_container(Wildcard, Specific)
        app = ServerBuilder(container, metadata=STORE_ORDER).build()

        assert mounted_names(app) == [h.name for h in container.get_all(TYPE.CONTROLLER)]
        assert mounted_names(app) == ["Wildcard", "Specific"]

        async with asgi_client(app) as client:
            resp = await client.get("/a/b")
        assert resp.json() == {"by": "wildcard", "x": "b"}

    @pytest.mark.asyncio
    async def test_reversed_registration_reverses_precedence(self, asgi_client):
        container = ordered_container(Specific, Wildcard)
        app = ServerBuilder(container, metadata=STORE_ORDER).build()

        assert mounted_names(app) == ["Specific", "Wildcard"]

        async with asgi_client(app) as client:
            specific = await client.get("/a/b")
            other = await client.get("/a/c")
        assert specific.json() == {"by": "specific"}
        assert other.json() == {"by": "wildcard", "x": "c"}

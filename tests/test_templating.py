"""Tests for zen.templating: filters, the kida environment and the template cache."""

from concurrent.futures import ThreadPoolExecutor

from kida.template import Markup

from zen.config import AppConfig
from zen.templating.filters import attr, field_error, flag
from zen.templating.integration import TemplateCache, create_environment


class TestFlagFilter:
    def test_booleans(self) -> None:
        assert flag(True) == "true"
        assert flag(False) == "false"

    def test_none_and_empty(self) -> None:
        assert flag(None) == "false"
        assert flag([]) == "false"

    def test_strings_pass_through(self) -> None:
        assert flag("Required") == "Required"


class TestAttrFilter:
    def test_truthy(self) -> None:
        result = attr("muted", "class")
        assert isinstance(result, Markup)
        assert str(result) == ' class="muted"'

    def test_escapes(self) -> None:
        assert str(attr('"x"', "title")) == ' title="&quot;x&quot;"'

    def test_falsy(self) -> None:
        assert attr(None, "class") == ""
        assert attr("", "class") == ""


class TestFieldErrorFilter:
    def test_present(self) -> None:
        assert field_error({"title": "Required"}, "title") == "Required"

    def test_absent(self) -> None:
        assert field_error({"title": "Required"}, "email") == ""
        assert field_error(None, "title") == ""


class TestEnvironment:
    def test_builtin_filters_registered(self, kida_env) -> None:
        env = kida_env
        tpl = env.from_string('<input z-invalid="{{ bad | flag }}">')
        assert tpl.render({"bad": True}) == '<input z-invalid="true">'

    def test_user_filters_and_globals(self, tmp_path) -> None:
        (tmp_path / "pages").mkdir()
        env = create_environment(
            AppConfig(root=tmp_path),
            filters={"shout": lambda value: str(value).upper()},
            globals_={"site_name": "Zen"},
        )
        tpl = env.from_string("{{ site_name }} {{ word | shout }}")
        assert tpl.render({"word": "hi"}) == "Zen HI"

    def test_autoescape(self, kida_env) -> None:
        assert kida_env.from_string("{{ x }}").render({"x": "<b>"}) == "&lt;b&gt;"


class TestTemplateCache:
    def test_reuses_compiled_template(self, kida_env) -> None:
        cache = TemplateCache(kida_env)
        assert cache.get("<p>{{ a }}</p>") is cache.get("<p>{{ a }}</p>")
        assert len(cache) == 1

    def test_render(self, kida_env) -> None:
        cache = TemplateCache(kida_env)
        assert cache.render("<p>{{ a }}</p>", {"a": 1}) == "<p>1</p>"

    def test_evicts_oldest(self, kida_env) -> None:
        cache = TemplateCache(kida_env, maxsize=2)
        first = cache.get("a")
        cache.get("b")
        cache.get("c")
        assert len(cache) == 2
        assert cache.get("a") is not first

    def test_shared_across_threads(self, kida_env) -> None:
        cache = TemplateCache(kida_env, maxsize=4)
        sources = [f"<p>{i} {{{{ a }}}}</p>" for i in range(8)]

        def render_all() -> list[str]:
            return [cache.render(source, {"a": "x"}) for _ in range(50) for source in sources]

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = [f.result() for f in [pool.submit(render_all) for _ in range(4)]]

        expected = [f"<p>{i} x</p>" for i in range(8)] * 50
        assert all(batch == expected for batch in results)
        assert len(cache) <= 4

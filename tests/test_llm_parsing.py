import json
import subprocess
from types import SimpleNamespace

import pytest

from aipreview import llm_parsing
from aipreview.llm_parsing import (
    extract_code,
    finalize_component_source,
    normalize_component_source,
    parse_analysis_response,
    parse_combined_response,
    sanitize_image_sources,
    sanitize_jsx_expressions,
)


COMPONENT_WITH_QUOTES = (
    "import { useState } from 'react';\n"
    "function App() {\n"
    '\tconst [label, setLabel] = useState("Hello");\n'
    "\tconst pattern = /\\d+/;\n"
    '\treturn <div className="box" title={label}>{pattern.test(label) ? \'digits\' : \'text\'}</div>;\n'
    "}\n"
    "\n"
    "export default App;"
)


def test_strip_markdown_fence_any_language():
    assert llm_parsing.strip_markdown_fence("```json\n{\"a\": 1}\n```") == '{"a": 1}'
    assert llm_parsing.strip_markdown_fence("  ```\nplain\n```  ") == "plain"
    assert llm_parsing.strip_markdown_fence("no fence") == "no fence"


def test_json_candidate_cuts_outer_object_and_drops_control_chars():
    text = 'Sure! Here it is:\n{"a": "x\x01y",\n "b": 2}\nHope that helps'
    assert llm_parsing.extract_json_candidate(text) == '{"a": "xy",\n "b": 2}'


def test_combined_plain_json():
    raw = json.dumps({"analysis": {"title": "Bakery"}, "code": "function App() { return <p>Hi</p>; }"})
    out = parse_combined_response(raw)
    assert out["analysis"] == {"title": "Bakery"}
    assert out["code"] == "function App() { return <p>Hi</p>; }\n\nexport default App;"


def test_combined_recovers_raw_newlines_in_strings():
    raw = '{"analysis": {"title": "T"}, "code": "function App() {\n  return <p>hi</p>;\n}"}'
    out = parse_combined_response(raw)
    assert out["analysis"] == {"title": "T"}
    assert out["code"] == "function App() {\n  return <p>hi</p>;\n}\n\nexport default App;"


def test_combined_field_repair_preserves_code_with_inner_quotes():
    raw = '{"analysis": {"title": "Shop"}, "code": "' + COMPONENT_WITH_QUOTES + '"}'
    with pytest.raises(ValueError):
        json.loads(raw)
    out = parse_combined_response(raw)
    assert out["analysis"] == {"title": "Shop"}
    assert out["code"] == COMPONENT_WITH_QUOTES


def test_combined_fenced_payload():
    raw = "```json\n" + json.dumps({"analysis": {"title": "X"}, "code": "const App = () => <div/>;"}) + "\n```"
    out = parse_combined_response(raw)
    assert out["analysis"] == {"title": "X"}
    assert out["code"].startswith("const App = () => <div/>;")
    assert out["code"].endswith("export default App;")


def test_jsx_semicolon_inside_interpolation_is_removed():
    out = parse_combined_response('{"code": "function App(){ return <div>{x;}</div>; }" }')
    body, _, export = out["code"].partition("\n\n")
    assert body == "function App(){ return <div>{x}</div>; }"
    assert export == "export default App;"
    assert out["analysis"] == {}


def test_combined_degrades_when_nothing_parses():
    raw = '{"analysis": oops, "code": "function App() { return <b>x</b>; }"}'
    out = parse_combined_response(raw)
    assert isinstance(out["analysis"], str)
    assert "could not be fixed" in out["analysis"]
    assert out["code"].startswith("function App() { return <b>x</b>; }")


def test_combined_non_object_and_missing_code():
    out = parse_combined_response("[1, 2, 3]")
    assert isinstance(out["analysis"], str)
    assert out["code"] == ""

    out = parse_combined_response('{"analysis": {"title": "Only analysis"}}')
    assert out == {"analysis": {"title": "Only analysis"}, "code": ""}

    out = parse_combined_response('{"analysis": {}, "code": 5}')
    assert out["code"] == ""


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "not json at all",
        "{",
        "}",
        '{"code": "',
        '{"code": "unterminated <div>',
        '{"code"',
        '{"code": }',
        "\x00\x01\x02{}\x7f",
        '{"analysis": "a", "code": "\\"}',
        "```\n```",
        '{"code": "export default function () { return <i/>; }"}',
        '{"code": "<img src=\\"http://x.test/a.png\\">"}',
        "{" * 50 + "}" * 10,
    ],
)
def test_combined_never_raises(raw):
    out = parse_combined_response(raw)
    assert isinstance(out, dict)
    assert "analysis" in out
    assert isinstance(out["code"], str)


def test_website_mode_canonicalizes_alternate_component():
    raw = "```jsx\nconst GeneratedComponent = () => { return <div/>; };\nexport default GeneratedComponent;\n```"
    code = extract_code(raw)
    assert "function App()" in code
    assert "export default App;" in code
    assert "GeneratedComponent" not in code
    assert "```" not in code
    assert code.count("export default") == 1


def test_normalize_fixes_function_arrow_mix():
    code = normalize_component_source("function App() => {\n  return <div/>;\n}")
    assert code.startswith("function App() {")


def test_normalize_unquotes_json_string_literal():
    code = normalize_component_source('"function App() {\\n  return <div>Hi</div>;\\n}"')
    assert code == "function App() {\n  return <div>Hi</div>;\n}\n\nexport default App;"


def test_normalize_unescapes_single_line_blob():
    code = normalize_component_source('function App() {\\n  return <div className=\\"x\\">Hi</div>;\\n}')
    assert 'className="x"' in code
    assert "\\n" not in code
    assert code.splitlines()[0] == "function App() {"


def test_normalize_keeps_js_escapes_in_decoded_source():
    src = "function App() {\n  const s = 'a\\nb';\n  return <p>{s}</p>;\n}"
    assert "'a\\nb'" in normalize_component_source(src)


def test_normalize_renames_first_top_level_component():
    src = "function Landing() {\n  return <Hero />;\n}\nfunction Hero() {\n  return <h1>Hi</h1>;\n}"
    code = normalize_component_source(src)
    assert "Landing" not in code
    assert "function App() {" in code
    assert "function Hero() {" in code
    assert code.endswith("export default App;")


def test_normalize_prefers_default_exported_component():
    src = (
        "function Navbar() {\n  return <nav/>;\n}\n"
        "function Home() {\n  return <div><Navbar /></div>;\n}\n"
        "export default Home;"
    )
    code = normalize_component_source(src)
    assert "function Navbar() {" in code
    assert "function App() {" in code
    assert "Home" not in code
    assert code.count("export default") == 1


def test_normalize_rename_leaves_jsx_text_alone():
    src = "function Home() {\n  return <nav><button>Home</button></nav>;\n}\n\nexport default Home;"
    code = normalize_component_source(src)
    assert code == "function App() {\n  return <nav><button>Home</button></nav>;\n}\n\nexport default App;"


def test_normalize_rename_touches_identifiers_not_strings():
    src = (
        "function Home({ title }) {\n  return <section title=\"Home\">{title}</section>;\n}\n"
        "const Page = () => <Home title='Home page' />;\n"
    )
    code = normalize_component_source(src)
    assert "function App({ title }) {" in code
    assert "<App title='Home page' />" in code
    assert 'title="Home"' in code
    assert "<Home" not in code


def test_normalize_strips_inline_default_export_declaration():
    code = normalize_component_source("export default function Landing() {\n  return <main/>;\n}")
    assert code == "function App() {\n  return <main/>;\n}\n\nexport default App;"


def test_normalize_keeps_arrow_const_form():
    code = normalize_component_source("const App = () => (\n  <div>Hi</div>\n);")
    assert code == "const App = () => (\n  <div>Hi</div>\n);\n\nexport default App;"


def test_normalize_removes_duplicate_default_exports():
    code = normalize_component_source("function App() {\n  return <p/>;\n}\nexport default App;\nexport default App;")
    assert code.count("export default App;") == 1


def test_normalize_strips_fences_anywhere():
    code = normalize_component_source("Here:\n```jsx\nfunction App() {\n  return <p/>;\n}\n```")
    assert "```" not in code


def test_jsx_sanitizer():
    assert sanitize_jsx_expressions("<p>{value;}</p>") == "<p>{value}</p>"
    assert sanitize_jsx_expressions("<p>{;}</p>") == "<p>{}</p>"
    assert sanitize_jsx_expressions("<p>{items.length,}</p>") == "<p>{items.length}</p>"
    assert sanitize_jsx_expressions("<p>{name.}</p>") == "<p>{name}</p>"
    assert sanitize_jsx_expressions("<p>{a; .}</p>") == "<p>{a}</p>"
    assert sanitize_jsx_expressions("<p>{'Loading...'}</p>") == "<p>{'Loading...'}</p>"


def test_jsx_sanitizer_leaves_blocks_alone():
    assert sanitize_jsx_expressions("if (ok) { go(); }") == "if (ok) { go(); }"
    assert sanitize_jsx_expressions("const f = () => { go(); };") == "const f = () => { go(); };"
    assert sanitize_jsx_expressions("} else { stop(); }") == "} else { stop(); }"


def test_syntax_repairs_when_check_unavailable():
    assert llm_parsing._js_syntax_error("anything") == llm_parsing.SYNTAX_CHECK_UNAVAILABLE
    assert llm_parsing.repair_js_syntax("const o = {b: 1,};") == "const o = {b: 1};"
    assert llm_parsing.repair_js_syntax("f(a,,b);") == "f(a,b);"
    assert llm_parsing.repair_js_syntax("const o = {,a: 1};") == "const o = {a: 1};"
    assert llm_parsing.repair_js_syntax("if (x) {done;}") == "if (x) {done}"
    assert llm_parsing.repair_js_syntax("call('a';)") == "call('a')"
    assert llm_parsing.repair_js_syntax("if (x) { done; }") == "if (x) { done; }"


def test_syntax_repairs_skipped_when_code_compiles(monkeypatch):
    monkeypatch.setattr(llm_parsing, "_node_binary", lambda: "/usr/bin/node")
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append((cmd, kwargs))
        return SimpleNamespace(returncode=0, stdout="", stderr="")

    monkeypatch.setattr(llm_parsing.subprocess, "run", fake_run)
    code = "import React from 'react';\nif (x) {done;}\nexport default App;"
    assert llm_parsing.repair_js_syntax(code) == code
    # imports and the default export are stripped before compiling
    assert calls[0][1]["input"] == "if (x) {done;}\n"


def test_syntax_check_reports_failures_and_timeouts(monkeypatch):
    monkeypatch.setattr(llm_parsing, "_node_binary", lambda: "/usr/bin/node")
    monkeypatch.setattr(
        llm_parsing.subprocess,
        "run",
        lambda cmd, **kw: SimpleNamespace(returncode=1, stdout="", stderr="[stdin]\nSyntaxError: Unexpected token '<'"),
    )
    assert llm_parsing._js_syntax_error("<div/>") == "SyntaxError: Unexpected token '<'"

    def timeout(cmd, **kw):
        raise subprocess.TimeoutExpired(cmd, 5)

    monkeypatch.setattr(llm_parsing.subprocess, "run", timeout)
    assert llm_parsing._js_syntax_error("while(true){}") == llm_parsing.SYNTAX_CHECK_UNAVAILABLE


def test_image_sources_allow_listed_hosts_untouched():
    html = (
        '<img src="https://picsum.photos/400/300?random=1" alt="One" />'
        "<img className='w-full' src='https://placehold.co/400x300?text=Two'>"
        '<img src="https://fastly.picsum.photos/id/1/200/300.jpg">'
    )
    assert sanitize_image_sources(html) == html


def test_image_sources_without_scheme_on_allowed_hosts_untouched():
    html = '<img src="picsum.photos/200" alt="a" /><img src="//placehold.co/300x200">'
    assert sanitize_image_sources(html) == html
    out = sanitize_image_sources('<img src="images/hero.png" alt="Hero">')
    assert "placehold.co/400x300?text=Hero" in out


def test_image_sources_rewritten_to_placeholder():
    out = sanitize_image_sources('<img src="https://example.com/ring.jpg" alt="Silver ring" className="w-1/2" />')
    assert out == (
        '<img src="https://placehold.co/400x300?text=Silver%20ring" alt="Silver ring" className="w-1/2" />'
    )

    out = sanitize_image_sources('<img className="hero" src="/images/hero.png">')
    assert out == '<img className="hero" src="https://placehold.co/400x300?text=Preview">'

    out = sanitize_image_sources('<img src="https://picsum.photos.evil.test/x.jpg" alt="x">')
    assert "evil" not in out

    long_alt = "A very long description of a handmade necklace"
    out = sanitize_image_sources(f'<img alt="{long_alt}" src="http://cdn.test/n.jpg">')
    assert "text=A%20very%20long%20description%20of%20a%20" in out
    assert "necklace" not in out.split("src=")[1]


def test_image_sources_with_expressions_are_left_alone():
    html = "<img src={product.image} alt={product.name} />"
    assert sanitize_image_sources(html) == html


@pytest.mark.parametrize(
    "raw",
    [
        COMPONENT_WITH_QUOTES,
        "```jsx\nconst GeneratedComponent = () => { return <div/>; };\nexport default GeneratedComponent;\n```",
        "function App(){ return <div>{x;}</div>; }",
        "function Landing() {\n  return <img src=\"https://bad.test/a.png\" alt=\"Hero\" />;\n}",
        '"function App() {\\n  return <div>{a,;}</div>;\\n}"',
        "const App = () => (\n  <ul>{items.map((i) => <li key={i}>{i}</li>)}</ul>\n);",
    ],
)
def test_normalization_is_idempotent(raw):
    once = finalize_component_source(raw)
    assert finalize_component_source(once) == once


def test_analysis_response_is_reindented():
    parsed, text = parse_analysis_response('```json\n{"title": "X", "features": ["a"]}\n```')
    assert parsed == {"title": "X", "features": ["a"]}
    assert text == json.dumps(parsed, indent=2)


def test_analysis_response_recovers_raw_newlines():
    parsed, _ = parse_analysis_response('{"overview": "line one\nline two"}')
    assert parsed == {"overview": "line one\nline two"}


def test_analysis_response_falls_back_to_raw_text():
    parsed, text = parse_analysis_response("  The model rambled instead.  ")
    assert parsed is None
    assert text == "The model rambled instead."

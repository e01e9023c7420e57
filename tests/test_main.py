import shutil
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

from newsletter_builder import main as cli
from newsletter_builder.pipeline import assembler, loader

TEMPLATES = Path(__file__).resolve().parents[1] / "mjml-template"

LONDON_HTML = """
<html><body>
<h2>In this edition</h2>
<ul><li>Tube strike</li><li>New bridge &amp; park</li></ul>
<h2>Spotlight</h2>
<h3>Tube strike</h3>
<p>Services will be <b>suspended</b> on Monday.</p>
<h3>New bridge</h3>
<p>The bridge opens in <a href="https://news.example/bridge" style="color:red">June</a>.</p>
<h2>What\u2019s on</h2>
<p>Jazz night</p>
<p>Live music.</p>
<p><a href="https://tickets.example">Book now</a></p>
<h2>Long story short</h2>
<h3>Business</h3>
<ul><li>Rates hold.</li></ul>
<h3>Culture</h3>
<ul><li>Museum reopens.</li></ul>
<h2>Did you know?</h2>
<p>London has 170 museums.</p>
<h2>Image credits</h2>
<p>Photos by Agency</p>
</body></html>
"""


@pytest.fixture
def project(tmp_path):
    shutil.copytree(TEMPLATES / "london-summary", tmp_path / "mjml-template" / "london-summary")
    docx = tmp_path / "docx" / "london-summary" / "2026" / "feb" / "feb-5.docx"
    docx.parent.mkdir(parents=True)
    docx.write_bytes(b"PK")
    return tmp_path, docx


@pytest.fixture
def fake_compiler(monkeypatch):
    compiled = []

    def fake_mjml_to_html(fp):
        compiled.append(fp.read().decode("utf-8"))
        return SimpleNamespace(html="<html>compiled</html>", errors=["Attribute foo is illegal"])

    monkeypatch.setattr(assembler, "mjml_to_html", fake_mjml_to_html)
    return compiled


def use_document(monkeypatch, html):
    monkeypatch.delenv("NEWSLETTER_HEADING_SHIFT", raising=False)
    # Converter output uses h(N+1) for Word "Heading N".
    shifted = html.replace("<h3>", "<h4>").replace("</h3>", "</h4>").replace("<h2>", "<h3>").replace("</h2>", "</h3>")
    monkeypatch.setattr(loader, "convert_docx", lambda path: shifted)


def test_run_pipeline_writes_outputs(project, fake_compiler, monkeypatch):
    root, docx = project
    use_document(monkeypatch, LONDON_HTML)

    state = cli.run_pipeline(str(docx), str(root))

    out_dir = root / "dist" / "london-summary" / "2026" / "feb"
    mjml = (out_dir / "feb-5.mjml").read_text(encoding="utf-8")
    assert (out_dir / "feb-5.html").read_text(encoding="utf-8") == "<html>compiled</html>"
    assert fake_compiler == [mjml]
    assert state["mjml_errors"] == ["Attribute foo is illegal"]

    assert "{{%" not in mjml
    assert "New bridge &amp; park" in mjml
    assert "<b>suspended</b>" in mjml
    assert 'target="_blank"' in mjml
    assert "color:red" not in mjml
    assert "Jazz night" in mjml
    assert "Museum reopens." in mjml
    assert "London has 170 museums." in mjml
    assert "Photos by Agency" in mjml


def test_missing_sections_still_build(project, fake_compiler, monkeypatch):
    root, docx = project
    use_document(monkeypatch, "<h2>In this edition</h2><ul><li>Only item</li></ul>")

    state = cli.run_pipeline(str(docx), str(root))

    assert state["fragments"]["SPOTLIGHT_SECTION"] == ""
    assert state["fragments"]["WHATS_ON_SECTION"] == ""
    assert "Only item" in state["mjml"]
    assert state["paths"]["out_html"].is_file()


def test_compile_failure_leaves_no_output(project, monkeypatch):
    root, docx = project
    use_document(monkeypatch, LONDON_HTML)

    def broken(fp):
        raise RuntimeError("compiler crashed")

    monkeypatch.setattr(assembler, "mjml_to_html", broken)
    with pytest.raises(RuntimeError):
        cli.run_pipeline(str(docx), str(root))
    assert not (root / "dist").exists()


def test_main_success(project, fake_compiler, monkeypatch):
    root, docx = project
    use_document(monkeypatch, LONDON_HTML)
    monkeypatch.setattr(sys, "argv", ["newsletter-builder", str(docx), "--root", str(root)])

    assert cli.main() == 0
    assert (root / "dist" / "london-summary" / "2026" / "feb" / "feb-5.html").is_file()


def test_main_reports_build_errors(tmp_path, monkeypatch, caplog):
    bad = tmp_path / "notes.docx"
    monkeypatch.setattr(sys, "argv", ["newsletter-builder", str(bad), "--root", str(tmp_path)])

    assert cli.main() == 1
    assert "DOCX must be inside" in caplog.text


def test_main_reports_unexpected_errors(project, monkeypatch, caplog):
    root, docx = project

    def explode(path):
        raise ValueError("corrupt document")

    monkeypatch.setattr(loader, "convert_docx", explode)
    monkeypatch.setattr(sys, "argv", ["newsletter-builder", str(docx), "--root", str(root)])

    assert cli.main() == 1
    assert "Build failed" in caplog.text

"""
End-to-end processing flows.

Builds a small outline language (``#`` headings, ``-`` items, plain
paragraphs), extends it with attachers and runs it through every way a
caller can drive the stages: one ``process`` call, or separate
``parse``/``run``/``stringify`` calls sharing one file.
"""

import asyncio

import pytest

from unified import VFile, unified


class OutlineParser:
    rules = {"#": "heading", "-": "item"}

    def __init__(self, file, settings, processor):
        self.file = file
        self.settings = settings or {}

    async def parse(self):
        children = []
        for number, line in enumerate(str(self.file).splitlines(), start=1):
            if not line.strip():
                continue
            node_type = next(
                (rule for prefix, rule in self.rules.items() if line.startswith(prefix)),
                "paragraph",
            )
            children.append(
                {
                    "type": node_type,
                    "value": line.lstrip("#-> ").strip(),
                    "position": {"start": {"line": number, "column": 1}},
                }
            )
        return {"type": "root", "children": children}


class HtmlCompiler:
    tags = {"heading": "h1", "item": "li", "paragraph": "p"}

    def __init__(self, file, settings, processor):
        self.tree = file.namespace(processor.name)["tree"]
        self.settings = settings or {}

    def compile(self):
        parts = []
        for node in self.tree["children"]:
            tag = self.tags.get(node["type"], "div")
            parts.append(f"<{tag}>{node['value']}</{tag}>")
        return self.settings.get("separator", "").join(parts)


def quotes(processor, options=None):
    """Attacher: teaches the parser and compiler about ``>`` quotes."""
    processor.Parser.rules[">"] = "quote"
    processor.Compiler.tags["quote"] = (options or {}).get("tag", "blockquote")


def slug_headings(tree, file):
    for node in tree["children"]:
        if node["type"] == "heading":
            node["id"] = node["value"].lower().replace(" ", "-")


def lint_empty_items(tree, file):
    for node in tree["children"]:
        if node["type"] == "item" and not node["value"]:
            file.warn("Empty list item", node)


async def uppercase_headings(tree, file):
    await asyncio.sleep(0)
    for node in tree["children"]:
        if node["type"] == "heading":
            node["value"] = node["value"].upper()


@pytest.fixture
def outline():
    return unified(name="outline", parser=OutlineParser, compiler=HtmlCompiler)


SOURCE = "# Getting started\n\nInstall it.\n- one\n-\n> note"


class TestProcessFlow:
    @pytest.mark.asyncio
    async def test_full_flow_with_plugins(self, outline):
        processor = outline().attach(quotes).use(slug_headings).use(lint_empty_items).use(uppercase_headings)
        file = VFile({"contents": SOURCE, "filename": "guide", "extension": "md"})

        result = await processor.process(file, {"separator": "\n"})

        assert result.result.splitlines() == [
            "<h1>GETTING STARTED</h1>",
            "<p>Install it.</p>",
            "<li>one</li>",
            "<li></li>",
            "<blockquote>note</blockquote>",
        ]
        assert result.file is file
        assert [str(message) for message in file.messages] == ["guide.md:5:1-5:1: Empty list item"]
        heading = file.namespace("outline")["tree"]["children"][0]
        assert heading["id"] == "getting-started"

    @pytest.mark.asyncio
    async def test_attacher_options_stay_on_instance(self, outline):
        custom = outline().attach(quotes, {"tag": "aside"})
        plain = outline()

        custom_result = await custom.process("> tip")
        plain_result = await plain.process("> tip")

        assert custom_result.result == "<aside>tip</aside>"
        assert plain_result.result == "<p>tip</p>"

    @pytest.mark.asyncio
    async def test_split_stages_share_file(self, outline):
        processor = outline().use(uppercase_headings)
        file = VFile("# title\nbody")

        await processor.parse(file)

        finished = asyncio.get_running_loop().create_future()
        processor.run(file, lambda error, *rest: finished.set_result(error))
        assert await finished is None

        assert processor.stringify(file) == "<h1>TITLE</h1><p>body</p>"

    @pytest.mark.asyncio
    async def test_default_instance_flow(self, outline):
        outline.use(slug_headings)
        result = await outline.process("# A B")
        assert result.file.namespace("outline")["tree"]["children"][0]["id"] == "a-b"
        assert len(outline().ware) == 0

    @pytest.mark.asyncio
    async def test_concurrent_processing(self, outline):
        processor = outline().use(uppercase_headings)
        results = await asyncio.gather(*(processor.process(f"# doc {n}") for n in range(5)))
        assert [r.result for r in results] == [f"<h1>DOC {n}</h1>" for n in range(5)]

#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for the assembly pipeline: include resolution, validation and rendering."""

from pathlib import Path

import pytest

from adocflat import (
    AssemblerOptions,
    AssemblyFailedError,
    CyclicIncludeError,
    DocumentAssembler,
    DuplicateAnchorError,
    ErrorKind,
    IncludeDepthError,
    MissingResourceError,
    SourcePosition,
    UnresolvedReferenceError,
    ValidationError,
    assemble_file,
    assemble_text,
    parse,
    render,
    resolve_cross_references,
    resolve_includes,
    validate_anchors,
)
from adocflat.document import IncludeBlock


@pytest.mark.unit
class TestIncludeSplicing:
    """Tests for splicing included text in place of the directive."""

    def test_basic_example(self) -> None:
        """Test the canonical in-memory example."""
        assert assemble_text("A\ninclude(x)\nB", {"x": "middle"}) == "A\nmiddle\nB"

    def test_included_trailing_terminator_replaced(self) -> None:
        """Test one trailing terminator of the resource gives way to the include line's."""
        assert assemble_text("A\ninclude(x)\nB", {"x": "middle\n"}) == "A\nmiddle\nB"
        assert assemble_text("A\ninclude(x)\nB", {"x": "m\n\n"}) == "A\nm\n\nB"

    def test_include_on_last_line(self) -> None:
        """Test an unterminated include line leaves the resource unterminated."""
        assert assemble_text("A\ninclude(x)", {"x": "tail\n"}) == "A\ntail"

    def test_empty_resource(self) -> None:
        """Test an empty resource leaves an empty line behind."""
        assert assemble_text("A\ninclude(x)\nB", {"x": ""}) == "A\n\nB"

    def test_multi_line_resource(self) -> None:
        """Test every line of a resource is spliced in order."""
        assert assemble_text("include::part.adoc[]\nend\n", {"part.adoc": "one\ntwo\n"}) == "one\ntwo\nend\n"

    def test_nested_includes_resolve_relative_to_includer(self) -> None:
        """Test a nested target is resolved against the including resource's directory."""
        resources = {
            "chapters/one.adoc": "chapter one\ninclude::sections/a.adoc[]\n",
            "chapters/sections/a.adoc": "section a\n",
        }
        result = assemble_text("include::chapters/one.adoc[]\n", resources)

        assert result == "chapter one\nsection a\n"

    def test_same_resource_included_twice(self) -> None:
        """Test repeated, non-nested inclusion of one resource is not a cycle."""
        assert assemble_text("include(x)\ninclude(x)\n", {"x": "again"}) == "again\nagain\n"

    def test_resolve_includes_leaves_no_directives(self) -> None:
        """Test the flattened document contains no IncludeBlock and keeps positions."""
        doc = parse("top\ninclude(x)\n")
        flattened = resolve_includes(doc, {"x": "one\ntwo\n"})

        assert flattened.is_flattened
        assert not any(isinstance(block, IncludeBlock) for block in flattened)
        assert flattened.blocks[2].position == SourcePosition("x", 2)

    def test_attribute_reference_in_target(self) -> None:
        """Test {name} references in targets are expanded from entries and predefined attributes."""
        resources = {"parts/a.adoc": "A", "lib/b.adoc": "B"}
        options = AssemblerOptions(attributes={"libdir": "lib"})

        text = ":partsdir: parts\ninclude::{partsdir}/a.adoc[]\ninclude::{libdir}/b.adoc[]\n"

        result = assemble_text(text, resources, options)

        assert result == "A\nB\n"

    def test_optional_missing_include_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test opts=optional turns a missing target into a warning."""
        result = assemble_text("A\ninclude::nope.adoc[opts=optional]\nB", {})

        assert result == "A\nB"
        assert "nope.adoc" in caplog.text

    def test_leveloffset_inherited_by_nested_includes(self) -> None:
        """Test a level offset applies to nested includes cumulatively."""
        resources = {"a.adoc": "= A\ninclude::b.adoc[leveloffset=+1]\n", "b.adoc": "= B\n"}

        result = assemble_text("include::a.adoc[leveloffset=+1]\n", resources)

        assert result == "== A\n=== B\n"

    def test_lines_selection(self) -> None:
        """Test lines= keeps only the selected lines."""
        resources = {"code.py": "l1\nl2\nl3\nl4\nl5\n"}

        assert assemble_text("include::code.py[lines=2..3;5]\n", resources) == "l2\nl3\nl5\n"

    def test_tag_selection(self) -> None:
        """Test tag= keeps the tagged region without its markers."""
        resources = {"code.py": "import os\n# tag::main[]\nmain()\n# end::main[]\nother()\n"}

        assert assemble_text("include::code.py[tag=main]\n", resources) == "main()\n"

    def test_malformed_selector_includes_everything(self) -> None:
        """Test an unparseable lines= value is ignored."""
        assert assemble_text("include::x[lines=a..b]\n", {"x": "1\n2\n"}) == "1\n2\n"


@pytest.mark.unit
class TestIncludeFailures:
    """Tests for fail-fast include errors."""

    def test_two_node_cycle(self) -> None:
        """Test a->b->a fails naming the revisited path."""
        resources = {"a": "include(b)", "b": "include(a)"}

        with pytest.raises(CyclicIncludeError) as exc_info:
            resolve_includes(parse("include(a)"), resources)

        assert exc_info.value.identifier == "a"
        assert exc_info.value.kind is ErrorKind.CYCLIC_INCLUDE
        assert exc_info.value.position == SourcePosition("b", 1)
        assert "a -> b -> a" in exc_info.value.message

    @pytest.mark.parametrize("length", [1, 3, 10])
    def test_cycles_of_any_length(self, length: int) -> None:
        """Test cycles are detected regardless of their length."""
        resources = {f"r{i}": f"include(r{(i + 1) % length})" for i in range(length)}

        result = DocumentAssembler(resources).assemble("include(r0)")

        assert not result.ok
        assert result.errors[0].kind is ErrorKind.CYCLIC_INCLUDE
        assert result.errors[0].identifier == "r0"

    def test_root_source_participates_in_cycles(self) -> None:
        """Test a resource including the named root document is a cycle."""
        result = DocumentAssembler({"x": "include(main)"}).assemble("include(x)", source="main")

        assert result.errors[0].kind is ErrorKind.CYCLIC_INCLUDE
        assert result.errors[0].identifier == "main"

    def test_missing_resource(self) -> None:
        """Test a missing target fails with the directive's position."""
        with pytest.raises(MissingResourceError) as exc_info:
            resolve_includes(parse("A\nB\ninclude::gone.adoc[]\n", source="root.adoc"), {})

        error = exc_info.value
        assert error.identifier == "gone.adoc"
        assert error.position == SourcePosition("root.adoc", 3)
        assert error.kind is ErrorKind.MISSING_RESOURCE

    def test_missing_nested_resource_position(self) -> None:
        """Test a nested missing target reports the nested resource and line."""
        with pytest.raises(MissingResourceError) as exc_info:
            resolve_includes(parse("include(a)"), {"a": "text\ninclude(b)"})

        assert exc_info.value.position == SourcePosition("a", 2)

    def test_depth_limit(self) -> None:
        """Test a chain deeper than max_include_depth fails."""
        resources = {f"r{i}": f"include(r{i + 1})" for i in range(10)}
        resources["r10"] = "bottom"
        options = AssemblerOptions(max_include_depth=5)

        with pytest.raises(IncludeDepthError) as exc_info:
            resolve_includes(parse("include(r0)"), resources, options)

        assert exc_info.value.kind is ErrorKind.INCLUDE_DEPTH_EXCEEDED
        assert exc_info.value.identifier == "r5"

    def test_depth_limit_allows_exact_depth(self) -> None:
        """Test a chain exactly max_include_depth deep succeeds."""
        resources = {"r0": "include(r1)", "r1": "include(r2)", "r2": "bottom"}

        assert assemble_text("include(r0)", resources, AssemblerOptions(max_include_depth=3)) == "bottom"

    def test_deep_chain_does_not_exhaust_the_stack(self) -> None:
        """Test very deep include chains are handled iteratively."""
        depth = 3000
        resources = {f"r{i}": f"include(r{i + 1})" for i in range(depth)}
        resources[f"r{depth}"] = "bottom"

        result = assemble_text("include(r0)", resources, AssemblerOptions(max_include_depth=depth + 1))

        assert result == "bottom"


@pytest.mark.unit
class TestValidation:
    """Tests for anchor and cross-reference validation."""

    def test_duplicate_anchor_across_resources(self) -> None:
        """Test identical anchors from different resources are reported."""
        doc = resolve_includes(parse("include(a)\ninclude(b)"), {"a": "[[dup]]\nA", "b": "[[dup]]\nB"})

        errors = validate_anchors(doc)

        assert len(errors) == 1
        assert isinstance(errors[0], DuplicateAnchorError)
        assert errors[0].identifier == "dup"
        assert errors[0].position == SourcePosition("b", 1)
        assert errors[0].first_position == SourcePosition("a", 1)

    def test_inline_and_block_anchor_collide(self) -> None:
        """Test inline and block anchors share one namespace."""
        errors = validate_anchors(parse("[[x]]\ntext [[x]] more"))

        assert [e.identifier for e in errors] == ["x"]

    def test_unique_anchors_pass(self) -> None:
        """Test distinct anchors produce no errors."""
        assert validate_anchors(parse("[[a]]\n[[b]]\n[#c]")) == []

    def test_all_unresolved_references_reported(self) -> None:
        """Test every unresolved reference is collected, in document order."""
        doc = parse("[[real]]\n<<one>> <<real>>\nxref:two[] and <<three,Three>>")

        errors = resolve_cross_references(doc)

        assert [e.identifier for e in errors] == ["one", "two", "three"]
        assert all(isinstance(e, UnresolvedReferenceError) for e in errors)
        assert errors[0].position.line == 2

    def test_external_references_not_checked(self) -> None:
        """Test inter-document references are not validated."""
        assert resolve_cross_references(parse("See xref:other.adoc#x[].")) == []

    def test_reference_to_included_anchor(self) -> None:
        """Test a reference may point at an anchor declared in an included resource."""
        assert assemble_text("See <<sec>>.\ninclude(x)", {"x": "[[sec,The Section]]"}) == "See The Section.\n"

    def test_assemble_collects_both_kinds(self) -> None:
        """Test assemble reports duplicate anchors and unresolved references together."""
        result = DocumentAssembler({}).assemble("[[a]]\n[[a]]\n<<missing>>\n<<gone>>")

        assert result.text is None
        assert [e.kind for e in result.errors] == [
            ErrorKind.DUPLICATE_ANCHOR,
            ErrorKind.UNRESOLVED_REFERENCE,
            ErrorKind.UNRESOLVED_REFERENCE,
        ]

    def test_validation_can_be_disabled(self) -> None:
        """Test validations are skipped when switched off."""
        options = AssemblerOptions(validate_anchors=False, validate_references=False)

        assert assemble_text("[[a]]\n[[a]]\n<<missing>>", options=options) == "[missing]"

    def test_assemble_text_raises_aggregate(self) -> None:
        """Test the convenience function raises with every error attached."""
        with pytest.raises(AssemblyFailedError) as exc_info:
            assemble_text("<<x>> <<y>>")

        assert len(exc_info.value.errors) == 2
        assert exc_info.value.kinds() == {ErrorKind.UNRESOLVED_REFERENCE}


@pytest.mark.unit
class TestRender:
    """Tests for the render modes."""

    def test_text_mode_substitutes_references(self) -> None:
        """Test references render as explicit text, reftext, or [id]."""
        doc = parse("[[a,Alpha]]\n[[b]]\n<<a>>, <<a,custom>>, <<b>>, xref:a[]")

        assert render(doc) == "Alpha, custom, [b], Alpha"

    def test_text_mode_drops_anchor_and_attribute_lines(self) -> None:
        """Test block anchors, inline anchors and attribute entries are removed."""
        doc = parse(":name: World\n[[top]]\nHello [[here]]{name}!\n")

        assert render(doc) == "Hello World!\n"

    def test_text_mode_unescapes_attribute_references(self) -> None:
        """Test a backslash-escaped reference renders literally without the backslash."""
        source = ":name: World\nUse \\{name} for {name}.\n"

        assert render(parse(source)) == "Use {name} for World.\n"
        assert render(parse(source), mode="asciidoc") == source

    def test_text_mode_keeps_verbatim_lines(self) -> None:
        """Test listing block content is rendered as written."""
        doc = parse("----\n<<a>> {name}\n----\n")

        assert render(doc, attributes={"name": "x"}) == "----\n<<a>> {name}\n----\n"

    def test_asciidoc_mode_reproduces_source(self) -> None:
        """Test asciidoc mode keeps anchors, entries and references as written."""
        source = ":v: 1\n[[a]]\n== Title\nSee <<a>>.\r\n"

        assert render(parse(source), mode="asciidoc") == source

    def test_render_rejects_unflattened_document(self) -> None:
        """Test rendering a document with include directives fails."""
        with pytest.raises(ValidationError):
            render(parse("include(x)"))

    def test_render_rejects_unknown_mode(self) -> None:
        """Test an unknown mode fails."""
        with pytest.raises(ValidationError):
            render(parse("text"), mode="html")  # type: ignore[arg-type]

    def test_asciidoc_output_option(self) -> None:
        """Test the assembler renders in the configured mode."""
        options = AssemblerOptions(output_mode="asciidoc")

        assert assemble_text("[[a]]\n<<a>>\ninclude(x)", {"x": "X"}, options) == "[[a]]\n<<a>>\nX"


@pytest.mark.unit
class TestAssembleFile:
    """Tests for assembling documents from the filesystem."""

    def test_manual_as_text(self, manual_tree: Path) -> None:
        """Test a nested file tree flattens with references resolved."""
        result = assemble_file(manual_tree / "manual.adoc")

        assert result == (
            "= Manual\n"
            "\n"
            "== Introduction\n"
            "Read Usage Guide next.\n"
            "== Usage\n"
            "Back to Introduction.\n"
            "----\n"
            "$ run [[not-an-anchor]]\n"
            "----\n"
        )

    def test_manual_as_asciidoc(self, manual_tree: Path) -> None:
        """Test asciidoc mode keeps the markup of every file."""
        result = assemble_file(manual_tree / "manual.adoc", options=AssemblerOptions(output_mode="asciidoc"))

        assert "[[usage,Usage Guide]]\n== Usage\nBack to <<intro>>.\n" in result
        assert result.startswith("= Manual\n:chapters: chapters\n\n[[intro]]\n")

    def test_missing_file_error_names_relative_path(self, write_tree) -> None:
        """Test a missing include reports the path relative to the document's directory."""
        root = write_tree({"main.adoc": "intro\ninclude::parts/missing.adoc[]\n"})

        with pytest.raises(AssemblyFailedError) as exc_info:
            assemble_file(root / "main.adoc")

        error = exc_info.value.errors[0]
        assert error.kind is ErrorKind.MISSING_RESOURCE
        assert error.identifier == "parts/missing.adoc"
        assert error.position == SourcePosition("main.adoc", 2)

    def test_file_cycle(self, write_tree) -> None:
        """Test a cycle through the root file is detected."""
        root = write_tree({"main.adoc": "include::other.adoc[]\n", "other.adoc": "include::main.adoc[]\n"})

        with pytest.raises(AssemblyFailedError) as exc_info:
            assemble_file(root / "main.adoc")

        assert exc_info.value.errors[0].kind is ErrorKind.CYCLIC_INCLUDE
        assert exc_info.value.errors[0].identifier == "main.adoc"

    def test_escape_from_base_directory_is_missing_resource(self, write_tree) -> None:
        """Test includes leaving the document's directory are refused."""
        root = write_tree({"docs/main.adoc": "include::../secret.txt[]\n", "secret.txt": "secret"})

        with pytest.raises(AssemblyFailedError) as exc_info:
            assemble_file(root / "docs" / "main.adoc")

        assert exc_info.value.errors[0].kind is ErrorKind.MISSING_RESOURCE

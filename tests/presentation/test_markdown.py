from __future__ import annotations

from marksync.domain.models.record import Document
from marksync.presentation.markdown import render_markdown


def _document(*records, generated_at: str | None = "2024-05-01T10:00:00.000Z") -> Document:
    return Document(schema_version=1, generated_at=generated_at, records=list(records))


class TestRenderMarkdown:
    def test_empty_document(self) -> None:
        output = render_markdown(_document())
        assert output.startswith("# My Bookmarks\n")
        assert "*Generated by marksync on 2024-05-01*" in output
        assert "Total bookmarks: 0" in output
        assert "No bookmarks yet" in output
        assert "automatically generated" not in output

    def test_groups_by_folder(self, make_record) -> None:
        output = render_markdown(
            _document(
                make_record("https://b.example.com", title="beta", folder_path="Work"),
                make_record("https://a.example.com", title="Alpha", folder_path="Work"),
                make_record("https://c.example.com", title="Loose"),
            )
        )
        assert output.index("## Uncategorized") < output.index("## Work")
        assert output.index("[Alpha]") < output.index("[beta]")
        assert "Total bookmarks: 3" in output
        assert output.rstrip().endswith("Do not edit directly.*")

    def test_record_decorations(self, make_record) -> None:
        record = make_record(
            "https://example.com",
            title="Docs [v2]",
            tags=["zeta", "alpha"],
            favorite=True,
            notes="read\nlater",
        )
        output = render_markdown(_document(record))
        assert "- [Docs \\[v2\\]](https://example.com) ⭐ `alpha` `zeta`" in output
        assert "  > read later" in output

    def test_groups_by_tag(self, make_record) -> None:
        output = render_markdown(
            _document(
                make_record("https://a.example.com", title="A", tags=["python", "web"]),
                make_record("https://b.example.com", title="B"),
            ),
            group_by="tag",
        )
        assert "## python" in output
        assert "## web" in output
        assert "## Untagged" in output
        assert output.count("[A]") == 2

    def test_archived_section(self, make_record) -> None:
        output = render_markdown(
            _document(
                make_record("https://a.example.com", title="Active"),
                make_record("https://b.example.com", title="Old", archived=True),
            )
        )
        assert "## Archived (1)" in output
        assert "<details>" in output
        assert output.index("[Active]") < output.index("## Archived")
        assert output.index("[Old]") > output.index("<summary>")

    def test_missing_generated_at(self) -> None:
        assert "on Unknown" in render_markdown(_document(generated_at=None))

    def test_custom_data_file(self, make_record) -> None:
        output = render_markdown(
            _document(make_record("https://example.com")), data_file="marks.json"
        )
        assert "[marks.json](./marks.json)" in output

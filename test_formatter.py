from datetime import date

import pytest

from sheet_pipeline.formatter import (
    ALTERNATE_FILL,
    CENTER,
    HEADER_FILL,
    HEADER_FONT,
    LEFT_WRAP,
    LINK_FONT,
    SECONDARY_FONT,
    THIN_BORDER,
    column_widths,
    format_sheet,
    is_sequence_header,
    split_hyperlink,
)
from sheet_pipeline.merger import build_json_sheets, resolve_json_payload
from sheet_pipeline.models import Hyperlink, Sheet
from sheet_pipeline.serializer import (
    content_disposition,
    dated_file_name,
    derived_file_name,
    write_formatted_workbook,
    write_plain_workbook,
)
from sheet_pipeline.translator import SEQUENCE_LABEL, HeaderTranslator


@pytest.fixture
def grouped_sheet():
    """
    Sheet built from the bilingual JSON example (groups: rows 1-2 and row 3).
    """
    sources = resolve_json_payload({"Sheet1": [
        {"ID": 1, "Name": "A"},
        {"ID": 1, "Name": "甲"},
        {"ID": 2, "Name": "B"},
    ]})
    return build_json_sheets(sources)[0]


@pytest.fixture
def flat_sheet():
    """
    Three-row sheet without grouping metadata.
    """
    return Sheet(
        name="Flat",
        headers=["ID", "Name"],
        rows=[{"ID": 1, "Name": "a"}, {"ID": 2, "Name": "b"}, {"ID": 3, "Name": "c"}],
    )


@pytest.fixture
def legal_sheet():
    """
    Eight-column sheet with legal-basis links in columns 6 and 7.
    """
    headers = ["STT", "Tên văn bản", "Số hiệu", "Cơ quan ban hành", "Ngày ban hành",
               "Căn cứ pháp lý", "Văn bản liên quan", "Ghi chú"]
    rows = [
        {"STT": 1, "Tên văn bản": "Nghị định", "Số hiệu": "01", "Cơ quan ban hành": "CP",
         "Ngày ban hành": "2024-01-01", "Căn cứ pháp lý": "Decree 01 http://example.com/doc",
         "Văn bản liên quan": "http://only-url.example", "Ghi chú": "extra"},
        {"STT": 2, "Tên văn bản": "法令", "Số hiệu": "02", "Cơ quan ban hành": "CP",
         "Ngày ban hành": "2024-02-01", "Căn cứ pháp lý": "không có",
         "Văn bản liên quan": "Luật http://example.com/law", "Ghi chú": None},
    ]
    return Sheet(name="Legal", headers=headers, rows=rows)


class TestSequenceColumn:
    """
    Tests for relabelling and numbering the first column.
    """

    @pytest.mark.parametrize(
        "header, expected",
        [
            ("ID", True),
            ("Product id", True),
            ("STT", True),
            ("序号", True),
            ("Name", False),
            (None, False),
        ],
        ids=["id", "contains-id", "stt", "chinese", "name", "none"]
    )
    def test_is_sequence_header(self, header, expected):
        assert is_sequence_header(header) is expected

    def test_grouped_values_and_merges(self, grouped_sheet):
        """
        Test one number per group at its first row and a merge over the group.
        """
        formatted = format_sheet(grouped_sheet)

        assert formatted.cell(1, 1).value == SEQUENCE_LABEL
        assert [formatted.cell(r, 1).value for r in (2, 3, 4)] == [1, None, 2]
        assert formatted.merged_ranges == ("A2:A3",)

    def test_flat_values(self, flat_sheet):
        """
        Test 1..N down every data row and no merges without groups.
        """
        formatted = format_sheet(flat_sheet)

        assert [formatted.cell(r, 1).value for r in (2, 3, 4)] == [1, 2, 3]
        assert formatted.merged_ranges == ()

    def test_other_first_column_is_left_alone(self):
        """
        Test that a first column not named like an identifier keeps its values.
        """
        sheet = Sheet(name="S", headers=["Name"], rows=[{"Name": "x"}])

        formatted = format_sheet(sheet)

        assert formatted.cell(1, 1).value == "Name"
        assert formatted.cell(2, 1).value == "x"


class TestRowStyling:
    """
    Tests for fills, fonts, borders and alignment of data rows.
    """

    def test_fill_alternates_by_group(self, grouped_sheet):
        """
        Test that every row of an odd group is shaded and even groups are not.
        """
        formatted = format_sheet(grouped_sheet)

        assert formatted.cell(2, 2).fill is None
        assert formatted.cell(3, 2).fill is None
        assert formatted.cell(4, 1).fill is ALTERNATE_FILL
        assert formatted.cell(4, 2).fill is ALTERNATE_FILL

    def test_fill_alternates_by_row_without_groups(self, flat_sheet):
        """
        Test row-parity shading when no grouping metadata exists.
        """
        formatted = format_sheet(flat_sheet)

        assert [formatted.cell(r, 1).fill for r in (2, 3, 4)] == [ALTERNATE_FILL, None, ALTERNATE_FILL]

    def test_secondary_rows_get_secondary_font(self, grouped_sheet):
        """
        Test that a secondary-language row is coloured from column 2 on, not column 1.
        """
        formatted = format_sheet(grouped_sheet)

        assert formatted.cell(3, 2).font is SECONDARY_FONT
        assert formatted.cell(3, 1).font is None
        assert formatted.cell(2, 2).font is None

    def test_alignment_per_column(self, legal_sheet):
        """
        Test centred columns 1 and 5 and wrapped left alignment elsewhere.
        """
        formatted = format_sheet(legal_sheet)

        assert formatted.cell(2, 1).alignment is CENTER
        assert formatted.cell(2, 5).alignment is CENTER
        for column in (2, 3, 4, 6, 7):
            assert formatted.cell(2, column).alignment is LEFT_WRAP
        assert formatted.cell(2, 3).border is THIN_BORDER

    def test_hyperlinks_in_link_columns(self, legal_sheet):
        """
        Test that "text http..." in columns 6-7 becomes a hyperlink.
        """
        formatted = format_sheet(legal_sheet)

        link = formatted.cell(2, 6)
        assert link.value == "Decree 01"
        assert link.hyperlink == "http://example.com/doc"
        assert link.font is LINK_FONT

        url_only = formatted.cell(2, 7)
        assert url_only.value == "http://only-url.example"
        assert url_only.hyperlink is None

        secondary_link = formatted.cell(3, 7)
        assert secondary_link.hyperlink == "http://example.com/law"
        assert secondary_link.font is LINK_FONT
        assert formatted.cell(3, 6).font is SECONDARY_FONT

    def test_composites_are_links_in_any_column(self, open_xlsx):
        """
        Test that {text, url} values become links outside the link columns too.
        """
        sources = resolve_json_payload([{
            "ID": 1, "Link": {"text": "Doc", "url": "http://x"},
            "C": "c", "D": "d", "E": "e", "F": "f", "G": "g",
        }])
        sheet = build_json_sheets(sources)[0]
        sheet = Sheet(name=sheet.name, headers=sheet.headers + ["H"],
                      rows=[{**sheet.rows[0], "H": {"text": "Far", "url": "http://far"}}])

        formatted = format_sheet(sheet)

        assert formatted.cell(2, 2).value == "Doc"
        assert formatted.cell(2, 2).hyperlink == "http://x"
        assert formatted.cell(2, 2).font is LINK_FONT
        assert formatted.cell(2, 2).alignment is LEFT_WRAP
        assert (formatted.cell(2, 8).value, formatted.cell(2, 8).hyperlink) == ("Far", "http://far")

        worksheet = open_xlsx(write_formatted_workbook([formatted]))["Sheet1"]
        assert worksheet["B2"].value == "Doc"
        assert worksheet["B2"].hyperlink.target == "http://x"

    def test_composite_without_url_is_plain_text(self):
        """
        Test that a composite missing its url shows its text without link styling.
        """
        sheet = Sheet(name="S", headers=["ID", "Ref", "C", "D", "E", "Basis"], rows=[
            {"ID": 1, "Ref": {"text": "Doc", "url": ""}, "C": "c", "D": "d", "E": "e",
             "Basis": {"text": "Law", "url": None}},
        ])

        formatted = format_sheet(sheet)

        for column in (2, 6):
            cell = formatted.cell(2, column)
            assert cell.hyperlink is None
            assert cell.font is not LINK_FONT
        assert formatted.cell(2, 2).value == "Doc"
        assert formatted.cell(2, 6).value == "Law"

    def test_columns_past_seven_are_untouched(self, legal_sheet):
        """
        Test that the eighth column keeps its header and carries no style.
        """
        formatted = format_sheet(legal_sheet)

        header = formatted.cell(1, 8)
        data = formatted.cell(2, 8)
        assert header.value == "Ghi chú"
        assert (header.font, header.fill, header.border) == (None, None, None)
        assert data.value == "extra"
        assert (data.font, data.fill, data.alignment, data.border) == (None, None, None, None)

    def test_header_row(self, legal_sheet):
        """
        Test header styling, translation and row height.
        """
        formatted = format_sheet(legal_sheet)

        header = formatted.cell(1, 2)
        assert header.value == "Tên văn bản\n文件名称"
        assert header.font is HEADER_FONT
        assert header.fill is HEADER_FILL
        assert header.border is THIN_BORDER
        assert formatted.row_heights == {1: 30}

    def test_custom_translator(self, flat_sheet):
        """
        Test that formatting uses the injected translator.
        """
        formatted = format_sheet(flat_sheet, HeaderTranslator({"Name": "Name\n名字"}))

        assert formatted.cell(1, 2).value == "Name\n名字"


class TestHelpers:
    """
    Tests for hyperlink splitting and column width computation.
    """

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("Decree 01 http://example.com/doc", Hyperlink("Decree 01", "http://example.com/doc")),
            ("  Luật   https://x.vn/a  ", Hyperlink("Luật", "https://x.vn/a")),
            ("http://example.com", None),
            ("no link here", None),
            (None, None),
            ({"text": "Doc", "url": "http://d"}, Hyperlink("Doc", "http://d")),
            ({"text": "Doc", "url": ""}, None),
            ({"text": "", "url": "http://d"}, None),
        ],
        ids=["text-and-url", "https-padded", "url-only", "no-url", "none", "composite",
             "composite-without-url", "composite-without-text"]
    )
    def test_split_hyperlink(self, value, expected):
        assert split_hyperlink(value) == expected

    def test_widths_are_clamped(self):
        """
        Test the [10, 50] clamp on longest text + 2.
        """
        grid = [["a", "b"], ["x" * 60, "abc"]]

        assert column_widths(grid) == {1: 50, 2: 10}

    @pytest.mark.parametrize(
        "length, expected",
        [(9, 17), (10, 18), (1, 15)],
        ids=["half-rounds-up", "even", "minimum"]
    )
    def test_fifth_column_is_wider(self, length, expected):
        """
        Test that column 5 is widened by half and rounded half up.
        """
        grid = [["1", "2", "3", "4", "x" * length]]

        assert column_widths(grid)[5] == expected

    def test_widths_cover_first_seven_columns(self):
        grid = [[str(i) for i in range(9)]]

        assert sorted(column_widths(grid)) == [1, 2, 3, 4, 5, 6, 7]


class TestSerializer:
    """
    Tests for writing workbooks and naming output files.
    """

    def test_formatted_workbook_round_trip(self, grouped_sheet, legal_sheet, open_xlsx):
        """
        Test that styles, merges, links and widths reach the written file.
        """
        content = write_formatted_workbook([format_sheet(grouped_sheet), format_sheet(legal_sheet)])
        workbook = open_xlsx(content)

        assert workbook.sheetnames == ["Sheet1", "Legal"]
        grouped = workbook["Sheet1"]
        assert grouped["A1"].value == SEQUENCE_LABEL
        assert grouped["A1"].font.bold is True
        assert grouped["A1"].fill.fgColor.rgb == "FF4472C4"
        assert grouped["A2"].value == 1
        assert grouped["A4"].value == 2
        assert "A2:A3" in [str(r) for r in grouped.merged_cells.ranges]
        assert grouped.row_dimensions[1].height == 30

        legal = workbook["Legal"]
        assert legal["F2"].value == "Decree 01"
        assert legal["F2"].hyperlink.target == "http://example.com/doc"
        assert legal.column_dimensions["A"].width == 10

    def test_text_is_never_a_formula(self, open_xlsx):
        """
        Test that input text starting with '=' is stored as a string.
        """
        sheet = Sheet(name="S", headers=["Name"], rows=[{"Name": "=SUM(A1:A2)"}])

        cell = open_xlsx(write_formatted_workbook([format_sheet(sheet)]))["S"]["A2"]

        assert cell.value == "=SUM(A1:A2)"
        assert cell.data_type == "s"

    def test_unsupported_values_are_written_as_text(self, open_xlsx):
        """
        Test that control characters are dropped and objects are stored as JSON.
        """
        sheet = Sheet(name="S", headers=["Name", "Meta"], rows=[{"Name": "a\x01b", "Meta": {"k": 1}}])

        worksheet = open_xlsx(write_formatted_workbook([format_sheet(sheet)]))["S"]

        assert worksheet["A2"].value == "ab"
        assert worksheet["B2"].value == '{"k": 1}'

    def test_plain_workbook(self, open_xlsx):
        """
        Test the unstyled writer used for plain re-indexing.
        """
        sheet = Sheet(name="Data", headers=["ID", "Name"], rows=[{"ID": 1, "Name": "a"}, {"ID": 2}])

        worksheet = open_xlsx(write_plain_workbook([sheet]))["Data"]

        assert [c.value for c in worksheet[1]] == ["ID", "Name"]
        assert [c.value for c in worksheet[2]] == [1, "a"]
        assert worksheet["A3"].value == 2
        assert worksheet["B3"].value is None

    def test_plain_workbook_keeps_text_and_no_styles(self, open_xlsx):
        """
        Test that the plain writer stores '=' text as text and leaves the header unstyled.
        """
        sheet = Sheet(name="Data", headers=["ID", "Formula"], rows=[{"ID": 1, "Formula": "=1+1"}])

        worksheet = open_xlsx(write_plain_workbook([sheet]))["Data"]

        assert worksheet["B2"].value == "=1+1"
        assert worksheet["B2"].data_type == "s"
        assert worksheet["A1"].font.bold is False
        assert worksheet["A1"].border.bottom.style is None

    def test_plain_workbook_without_sheets(self, open_xlsx):
        assert open_xlsx(write_plain_workbook([])).sheetnames == ["Sheet1"]

    def test_dated_file_name(self):
        assert dated_file_name("Tong hop", date(2024, 3, 5)) == "Tong hop 20240305.xlsx"

    def test_derived_file_name(self):
        assert derived_file_name("dir/report.xls", "_reindexed") == "report_reindexed.xlsx"

    @pytest.mark.parametrize(
        "file_name, expected",
        [
            ("report.xlsx", 'attachment; filename="report.xlsx"'),
            ("báo cáo.xlsx", "attachment; filename=\"b%C3%A1o%20c%C3%A1o.xlsx\"; "
                             "filename*=UTF-8''b%C3%A1o%20c%C3%A1o.xlsx"),
        ],
        ids=["ascii", "non-ascii"]
    )
    def test_content_disposition(self, file_name, expected):
        assert content_disposition(file_name) == expected

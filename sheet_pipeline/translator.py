from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence

# Columns past this position are never translated or styled
TRANSLATED_COLUMN_LIMIT = 7

SEQUENCE_LABEL = "STT\n序号"
SEQUENCE_TOKEN = "序号"

DEFAULT_HEADER_TRANSLATIONS: Mapping[str, str] = MappingProxyType({
    "STT": SEQUENCE_LABEL,
    "Số thứ tự": "Số thứ tự\n序号",
    "Tên": "Tên\n名称",
    "Tên văn bản": "Tên văn bản\n文件名称",
    "Tiêu đề": "Tiêu đề\n标题",
    "Số hiệu": "Số hiệu\n文号",
    "Số hiệu văn bản": "Số hiệu văn bản\n文件编号",
    "Loại văn bản": "Loại văn bản\n文件类型",
    "Cơ quan ban hành": "Cơ quan ban hành\n发布机关",
    "Ngày ban hành": "Ngày ban hành\n发布日期",
    "Ngày hiệu lực": "Ngày hiệu lực\n生效日期",
    "Ngày": "Ngày\n日期",
    "Lĩnh vực": "Lĩnh vực\n领域",
    "Trích yếu": "Trích yếu\n摘要",
    "Tóm tắt": "Tóm tắt\n摘要",
    "Nội dung": "Nội dung\n内容",
    "Mô tả": "Mô tả\n描述",
    "Tình trạng": "Tình trạng\n状态",
    "Căn cứ pháp lý": "Căn cứ pháp lý\n法律依据",
    "Văn bản liên quan": "Văn bản liên quan\n相关文件",
    "Đường dẫn": "Đường dẫn\n链接",
    "Ghi chú": "Ghi chú\n备注",
})


class HeaderTranslator:
    """
    Maps header names to two-line bilingual display labels.

    The mapping is supplied at construction and never mutated; headers
    without an entry pass through unchanged.
    """

    def __init__(self, mapping: Optional[Mapping[str, str]] = None):
        source = DEFAULT_HEADER_TRANSLATIONS if mapping is None else mapping
        self._mapping = MappingProxyType(dict(source))

    @property
    def mapping(self) -> Mapping[str, str]:
        return self._mapping

    def translate(self, header: str) -> str:
        return self._mapping.get(header, header)

    def translate_headers(self, headers: Sequence[str], limit: int = TRANSLATED_COLUMN_LIMIT) -> List[str]:
        """Translate the first `limit` headers, leaving the rest as they are."""
        return [
            self.translate(header) if index < limit else header
            for index, header in enumerate(headers)
        ]


default_translator = HeaderTranslator()

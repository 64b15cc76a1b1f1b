from __future__ import annotations

from typing import Optional

MIME_TYPES: dict[str, str] = {
    "html": "text/html",
    "htm": "text/html",
    "gif": "image/gif",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "js": "text/javascript",
    "txt": "text/plain",
    "pdf": "application/pdf",
    "xls": "application/msexcel",
    "doc": "application/msword",
    "ppt": "application/mspowerpoint",
    "rtf": "text/rtf",
    # StarOffice / OpenOffice.org
    "sds": "application/vnd.stardivision.chart",
    "sdc": "application/vnd.stardivision.calc",
    "sdw": "application/vnd.stardivision.writer",
    "sgl": "application/vnd.stardivision.writer-global",
    "sda": "application/vnd.stardivision.draw",
    "sdd": "application/vnd.stardivision.impress",
    "sdf": "application/vnd.stardivision.math",
    "sxw": "application/vnd.sun.xml.writer",
    "stw": "application/vnd.sun.xml.writer.template",
    "sxg": "application/vnd.sun.xml.writer.global",
    "sxc": "application/vnd.sun.xml.calc",
    "stc": "application/vnd.sun.xml.calc.template",
    "sxi": "application/vnd.sun.xml.impress",
    "sti": "application/vnd.sun.xml.impress.template",
    "sxd": "application/vnd.sun.xml.draw",
    "std": "application/vnd.sun.xml.draw.template",
    "sxm": "application/vnd.sun.xml.math",
    # OpenDocument
    "odt": "application/vnd.oasis.opendocument.text",
    "ott": "application/vnd.oasis.opendocument.text-template",
    "oth": "application/vnd.oasis.opendocument.text-web",
    "odm": "application/vnd.oasis.opendocument.text-master",
    "odg": "application/vnd.oasis.opendocument.graphics",
    "otg": "application/vnd.oasis.opendocument.graphics-template",
    "odp": "application/vnd.oasis.opendocument.presentation",
    "otp": "application/vnd.oasis.opendocument.presentation-template",
    "ods": "application/vnd.oasis.opendocument.spreadsheet",
    "ots": "application/vnd.oasis.opendocument.spreadsheet-template",
    "odc": "application/vnd.oasis.opendocument.chart",
    "odf": "application/vnd.oasis.opendocument.formula",
    "odb": "application/vnd.oasis.opendocument.database",
    "odi": "application/vnd.oasis.opendocument.image",
    # Office Open XML
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "docm": "application/vnd.ms-word.document.macroEnabled.12",
    "dotx": "application/vnd.openxmlformats-officedocument.wordprocessingml.template",
    "dotm": "application/vnd.ms-word.template.macroEnabled.12",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "xlsm": "application/vnd.ms-excel.sheet.macroEnabled.12",
    "xltx": "application/vnd.openxmlformats-officedocument.spreadsheetml.template",
    "xltm": "application/vnd.ms-excel.template.macroEnabled.12",
    "xlsb": "application/vnd.ms-excel.sheet.binary.macroEnabled.12",
    "xlam": "application/vnd.ms-excel.addin.macroEnabled.12",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "pptm": "application/vnd.ms-powerpoint.presentation.macroEnabled.12",
    "ppsx": "application/vnd.openxmlformats-officedocument.presentationml.slideshow",
    "ppsm": "application/vnd.ms-powerpoint.slideshow.macroEnabled.12",
    "potx": "application/vnd.openxmlformats-officedocument.presentationml.template",
    "potm": "application/vnd.ms-powerpoint.template.macroEnabled.12",
    "ppam": "application/vnd.ms-powerpoint.addin.macroEnabled.12",
    "sldx": "application/vnd.openxmlformats-officedocument.presentationml.slide",
    "sldm": "application/vnd.ms-powerpoint.slide.macroEnabled.12",
    "one": "application/onenote",
    "onetoc2": "application/onenote",
    "onetmp": "application/onenote",
    "onepkg": "application/onenote",
    "thmx": "application/vnd.ms-officetheme",
}


def mime_type_for(filename: str) -> Optional[str]:
    """Look up the content type by extension; None for unknown extensions."""
    _, dot, extension = filename.rpartition(".")
    if not dot:
        return None
    return MIME_TYPES.get(extension.lower())

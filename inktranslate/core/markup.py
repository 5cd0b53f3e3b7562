"""
lxml helpers shared by the segmenter and the reassembler
"""
import copy
import html
import re
from html.entities import name2codepoint

from lxml import etree

from inktranslate.exceptions import MalformedDocument


XML_PREDEFINED_ENTITIES = frozenset(['amp', 'lt', 'gt', 'quot', 'apos'])

_ENTITY_PATTERN = re.compile(r'&([A-Za-z][A-Za-z0-9]*);')
_BARE_AMPERSAND_PATTERN = re.compile(r'&(?!(?:[A-Za-z][A-Za-z0-9]*|#[0-9]+|#[xX][0-9A-Fa-f]+);)')


def normalize_html_entities(text):
    """
    Replace HTML named entities (&nbsp;, &mdash;...) with numeric references

    XHTML chapters and LLM output both use them freely, but an XML parser
    without the XHTML DTD does not know them.
    """
    def replace_entity(match):
        name = match.group(1)
        if name in XML_PREDEFINED_ENTITIES or name not in name2codepoint:
            return match.group(0)
        return f"&#{name2codepoint[name]};"

    return _ENTITY_PATTERN.sub(replace_entity, text)


def escape_bare_ampersands(text):
    """Escape every & that does not start a character or entity reference ("Tom & Jerry")"""
    return _BARE_AMPERSAND_PATTERN.sub('&amp;', text)


def has_xml_declaration(markup):
    return markup.lstrip('\ufeff \t\r\n').startswith('<?xml')


def parse_markup(markup):
    """
    Parse chapter markup into an lxml tree

    Args:
        markup: Raw XHTML/HTML text of one chapter

    Returns:
        Root element of the parsed document

    Raises:
        MalformedDocument: If no tree can be built from the markup
    """
    parser = etree.XMLParser(encoding='utf-8', recover=True, remove_blank_text=False)
    try:
        root = etree.fromstring(normalize_html_entities(markup).encode('utf-8'), parser)
    except etree.XMLSyntaxError as e:
        raise MalformedDocument("Chapter markup could not be parsed", details=str(e)) from e
    if root is None:
        raise MalformedDocument("Chapter markup produced no document element")
    return root


def serialize_document(root, xml_declaration=False):
    """Serialize a whole document, doctype included"""
    return etree.tostring(root.getroottree(), encoding='utf-8',
                          xml_declaration=xml_declaration).decode('utf-8')


def local_name(element):
    """Lower-cased tag name without namespace, None for comments and PIs"""
    if not isinstance(element.tag, str):
        return None
    return etree.QName(element).localname.lower()


def find_body(root):
    for element in root.iter():
        if local_name(element) == 'body':
            return element
    return None


def text_content(element):
    return "".join(element.itertext())


def inner_markup(element):
    """
    Serialize the content of an element (its text and children), the way
    innerHTML does, without repeating namespace declarations on every child

    Only the element's own default namespace is dropped. Foreign content
    (inline MathML, SVG) keeps its namespace and gets its own xmlns.
    """
    default_ns = element.nsmap.get(None)
    clone = copy.deepcopy(element)
    for node in clone.iter():
        if isinstance(node.tag, str) and etree.QName(node).namespace == default_ns:
            node.tag = etree.QName(node).localname
    etree.cleanup_namespaces(clone)

    parts = []
    if clone.text:
        parts.append(html.escape(clone.text, quote=False))
    for child in clone:
        parts.append(etree.tostring(child, encoding='unicode', with_tail=True))
    return "".join(parts)

"""
Reverse Cloudflare's email protection.

Sites behind Cloudflare often ship addresses as ``data-cfemail`` hex on a
placeholder element, or as a link to ``/cdn-cgi/l/email-protection#<hex>``.
The payload is XOR-ed: byte 0 is the key for every following byte.
"""

from typing import Optional

from loguru import logger

CF_PROTECTION_PATH = "/cdn-cgi/l/email-protection#"


def decode_cloudflare_email(encoded: Optional[str]) -> Optional[str]:
    """
    Turn a Cloudflare hex payload back into the address it hides.

    Parameters
    ----------
    encoded : str
        The ``data-cfemail`` value or the fragment of a protection link,
        e.g. ``"422302206c212d"``.

    Returns
    -------
    str or None
        The address, or None when the payload is malformed or does not
        decode to something email-shaped.
    """
    try:
        data = bytes.fromhex((encoded or "").strip())
    except ValueError as exc:
        logger.debug("Bad cfemail payload '{}': {}", (encoded or "")[:20], exc)
        return None
    if len(data) < 2:
        return None

    key = data[0]
    decoded = "".join(chr(byte ^ key) for byte in data[1:])
    local, _, domain = decoded.partition("@")
    if not local or "." not in domain:
        return None
    logger.debug("cfemail {}... -> {}", encoded[:12], decoded)
    return decoded


def decode_protection_href(href: Optional[str]) -> Optional[str]:
    """Decode an ``/cdn-cgi/l/email-protection#HEX`` link, if it is one."""
    if not href or CF_PROTECTION_PATH not in href:
        return None
    return decode_cloudflare_email(href.split("#", 1)[1])

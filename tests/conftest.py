import base64


def encoded(text):
    """Base64 text, the form values take on the wire."""
    return base64.b64encode(text.encode('utf8')).decode('ascii')

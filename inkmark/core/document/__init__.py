from .baker import AnnotationBaker, PdfPageWriter, hex_to_rgb
from .surface import DocumentSurface, FixedSurface, PdfDocumentSurface

__all__ = [
    'AnnotationBaker',
    'DocumentSurface',
    'FixedSurface',
    'PdfDocumentSurface',
    'PdfPageWriter',
    'hex_to_rgb',
]

"""Image checks applied before anything is uploaded."""

# Allowed file extensions
IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp', 'heic'}

# File size limit
LISTING_IMAGE_MAX_SIZE = 10 * 1024 * 1024  # 10MB

# Magic bytes for image format detection
# Maps magic byte signatures to (extension_set, mime_type)
IMAGE_SIGNATURES = [
    (b'\x89PNG\r\n\x1a\n', {'png'}, 'image/png'),
    (b'\xff\xd8\xff', {'jpg', 'jpeg'}, 'image/jpeg'),
    (b'GIF87a', {'gif'}, 'image/gif'),
    (b'GIF89a', {'gif'}, 'image/gif'),
    (b'RIFF', {'webp'}, 'image/webp'),  # WebP starts with RIFF....WEBP
]

# HEIC uses an ftyp box: bytes 4-12 carry the 'ftyp' marker
HEIC_FTYP_BRANDS = {b'heic', b'heix', b'mif1'}


def detect_image_type(file_data: bytes):
    """Detect image type from magic bytes.

    Returns:
        Tuple of (extension_set, mime_type) or (None, None) if unknown.
    """
    if len(file_data) < 12:
        return None, None

    for signature, exts, mime in IMAGE_SIGNATURES:
        if file_data[:len(signature)] == signature:
            # WebP: bytes 8-12 must be 'WEBP'
            if 'webp' in exts and file_data[8:12] != b'WEBP':
                continue
            return exts, mime

    if file_data[4:8] == b'ftyp' and file_data[8:12].strip(b'\x00') in HEIC_FTYP_BRANDS:
        return {'heic'}, 'image/heic'

    return None, None


def file_extension(filename):
    if not filename or '.' not in filename:
        return None
    return filename.rsplit('.', 1)[1].lower()


def check_image(file_data: bytes, filename: str, max_size: int = LISTING_IMAGE_MAX_SIZE):
    """Validate one image.

    Validates:
    1. File extension against whitelist
    2. File size against max_size
    3. Magic bytes match an actual image format
    4. Extension matches the detected image type

    Returns:
        Tuple of (mime_type, error_message). Exactly one is None.
    """
    ext = file_extension(filename)
    if ext not in IMAGE_EXTENSIONS:
        allowed_types = ', '.join(sorted(IMAGE_EXTENSIONS))
        return None, f'File type not allowed. Allowed: {allowed_types}'

    if not file_data:
        return None, 'File is empty'

    if len(file_data) > max_size:
        max_mb = max_size // (1024 * 1024)
        return None, f'File too large. Maximum size: {max_mb}MB'

    detected_exts, detected_mime = detect_image_type(file_data)
    if detected_exts is None:
        return None, 'File does not appear to be a valid image'

    if ext not in detected_exts:
        return None, f'File extension .{ext} does not match actual image format'

    return detected_mime, None

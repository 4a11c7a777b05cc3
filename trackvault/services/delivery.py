"""
HTTP responses for resolved audio objects.

Four shapes are produced:

- direct: bytes fetched server-side, returned whole
- redirect: 302 to a signed URL after a HEAD probe that is only logged
- proxy: the signed URL streamed through this server with Range forwarded
- download: the whole object as an attachment (direct bytes or proxied)

All of them disable caching and carry X-Resolution-* headers describing which
candidate key served the request.
"""

import logging
from typing import Optional
from urllib.parse import quote

import httpx
from flask import Response

from trackvault.errors import MediaError, NotFoundError, UpstreamError
from trackvault.services.storage import ResolvedObject, content_type_for, filename_from_key

logger = logging.getLogger(__name__)

NO_STORE = 'no-store, no-cache, max-age=0, must-revalidate'
PROXY_CHUNK_SIZE = 64 * 1024
GENERIC_CONTENT_TYPES = ('', 'application/octet-stream', 'binary/octet-stream')
ERROR_PAGE_CONTENT_TYPES = ('application/json', 'text/html')


def resolution_headers(resolved: ResolvedObject) -> dict:
    # Header values must be latin-1; decoded keys may hold any unicode
    return {
        'X-Resolved-Key': quote(resolved.key, safe='/'),
        'X-Resolution-Candidates': str(len(resolved.candidates)),
        'X-Resolution-Source': 'exact' if resolved.candidate_index == 0 else 'fallback',
    }


def _attachment(filename: str) -> str:
    return f'attachment; filename="{filename}"'


def _pick_content_type(upstream_type: Optional[str], key: str) -> str:
    """Prefer the provider's type unless it is generic; Safari refuses octet-stream audio."""
    upstream_type = (upstream_type or '').strip()
    if upstream_type.split(';')[0].strip().lower() in GENERIC_CONTENT_TYPES:
        return content_type_for(key)
    return upstream_type


def direct_response(resolved: ResolvedObject) -> Response:
    """Whole object body with extension-derived Content-Type."""
    content = resolved.content or b''
    response = Response(content, status=200, mimetype=None, content_type=content_type_for(resolved.key))
    response.headers['Accept-Ranges'] = 'bytes'
    response.headers['Content-Length'] = str(len(content))
    response.headers['Cache-Control'] = NO_STORE
    response.headers.update(resolution_headers(resolved))
    return response


def probe_signed_url(signed_url: str, http_client: httpx.Client):
    """HEAD the signed URL. Returns (status, content_type); never raises."""
    try:
        probe = http_client.head(signed_url, follow_redirects=True)
        return str(probe.status_code), probe.headers.get('content-type', '')
    except httpx.HTTPError as e:
        logger.warning(f"Signed URL probe failed: {e}")
        return 'error', ''


def redirect_response(resolved: ResolvedObject, signed_url: str, http_client: httpx.Client) -> Response:
    """302 to the signed URL; the probe result only feeds logs and X-Audio-Probe-* headers."""
    probe_status, probe_type = probe_signed_url(signed_url, http_client)
    logger.info(f"Redirecting '{resolved.key}' to signed URL (probe status={probe_status}, "
                f"content-type={probe_type or 'n/a'})")

    response = Response(status=302)
    response.headers['Location'] = signed_url
    response.headers['Cache-Control'] = NO_STORE
    response.headers['X-Audio-Probe-Status'] = probe_status
    response.headers['X-Audio-Probe-Content-Type'] = probe_type or 'n/a'
    response.headers.update(resolution_headers(resolved))
    return response


def _open_upstream(signed_url: str, http_client: httpx.Client, range_header: Optional[str]):
    headers = {}
    if range_header:
        headers['Range'] = range_header
    request = http_client.build_request('GET', signed_url, headers=headers)
    try:
        return http_client.send(request, stream=True, follow_redirects=True)
    except httpx.HTTPError as e:
        http_client.close()
        logger.error(f"Upstream fetch failed: {e}")
        raise UpstreamError('Storage request failed') from e


def _stream_body(upstream: httpx.Response, http_client: httpx.Client):
    try:
        for chunk in upstream.iter_bytes(PROXY_CHUNK_SIZE):
            yield chunk
    finally:
        upstream.close()
        http_client.close()


def _raise_for_upstream(upstream: httpx.Response, key: str):
    status = upstream.status_code
    try:
        detail = upstream.read()[:200].decode('utf-8', errors='replace')
    except httpx.HTTPError:
        detail = ''
    logger.error(f"Upstream returned {status} for '{key}': {detail}")
    if status == 404:
        raise NotFoundError('Audio file not found in storage')
    if status >= 500:
        raise UpstreamError(f'Storage returned {status}')
    raise MediaError(f'Storage returned {status}', status_code=status)


def proxy_response(resolved: ResolvedObject, signed_url: str, http_client: httpx.Client,
                   range_header: Optional[str] = None, download_name: Optional[str] = None) -> Response:
    """
    Stream the signed URL through this server.

    The client's Range header is forwarded and the upstream status, Content-Range,
    Content-Length and Content-Type are mirrored. An upstream 416 is passed on
    as an empty 416. The http_client is closed once the body has been streamed.
    """
    upstream = _open_upstream(signed_url, http_client, range_header)
    base_headers = {'Cache-Control': NO_STORE}
    base_headers.update(resolution_headers(resolved))

    if upstream.status_code == 416:
        content_range = upstream.headers.get('content-range') or 'bytes */0'
        upstream.close()
        http_client.close()
        response = Response(b'', status=416)
        response.headers.update(base_headers)
        response.headers['Content-Range'] = content_range
        return response

    if upstream.status_code not in (200, 206):
        try:
            _raise_for_upstream(upstream, resolved.key)
        finally:
            upstream.close()
            http_client.close()

    upstream_type = upstream.headers.get('content-type', '')
    if download_name and upstream_type.split(';')[0].strip().lower() in ERROR_PAGE_CONTENT_TYPES:
        upstream.close()
        http_client.close()
        logger.error(f"Storage returned an error page instead of '{resolved.key}'")
        raise UpstreamError('Storage returned an error page, not a file.')

    response = Response(_stream_body(upstream, http_client), status=upstream.status_code,
                        content_type=_pick_content_type(upstream_type, resolved.key))
    response.headers.update(base_headers)
    response.headers['Accept-Ranges'] = 'bytes'
    if upstream.headers.get('content-length'):
        response.headers['Content-Length'] = upstream.headers['content-length']
    if upstream.headers.get('content-range'):
        response.headers['Content-Range'] = upstream.headers['content-range']
    if download_name:
        response.headers['Content-Disposition'] = _attachment(download_name)
    return response


def download_response(resolved: ResolvedObject, download_name: str) -> Response:
    """Whole object as an attachment from bytes already fetched."""
    response = direct_response(resolved)
    response.headers['Content-Disposition'] = _attachment(download_name)
    return response


def default_download_name(resolved: ResolvedObject, title: Optional[str] = None) -> str:
    """Track title with the stored file's extension, else the stored filename."""
    filename = filename_from_key(resolved.key)
    if title:
        ext = ''
        if '.' in filename:
            ext = '.' + filename.rsplit('.', 1)[-1]
        return f"{title}{ext}"
    return filename

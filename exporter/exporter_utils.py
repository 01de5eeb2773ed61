from fastapi import Request, Response
from prometheus_client.exposition import choose_encoder


def make_scrape_endpoint(collector_registry):
    def scrape_endpoint(request: Request):
        accept_header = request.headers.get('Accept')
        encoder, content_type = choose_encoder(accept_header)
        output = encoder(collector_registry)
        return Response(content=output, status_code=200, headers={'Content-Type': content_type})
    return scrape_endpoint

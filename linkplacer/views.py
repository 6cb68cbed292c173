"""Django views for the link placer app.

The views expose the engine as a small JSON API: one call reduces a
document into the inputs of the suggestion model, another validates the
model's answer and places the accepted links, and a third lists the
signed-in user's recent placement runs. The placement call also takes the
optional analysis, audit and inbound answers and returns them validated.
"""

from __future__ import annotations

import logging
from dataclasses import asdict

from django.contrib.auth.decorators import login_required
from django.http import HttpRequest, JsonResponse
from django.views.decorators.http import require_GET, require_POST

from . import services
from .engine import DocumentError, extract_existing_links, reduce_content
from .forms import DocumentForm, PlacementForm
from .models import PlacementRun

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 20


def _form_errors(form) -> JsonResponse:
    return JsonResponse({'errors': form.errors.get_json_data()}, status=400)


@require_POST
def reduce_document(request: HttpRequest) -> JsonResponse:
    """Return the reduced content, existing links and the first inventory batch."""

    form = DocumentForm(request.POST)
    if not form.is_valid():
        return _form_errors(form)

    domain = form.cleaned_data['domain']
    content: str = form.cleaned_data['content']
    config = services.engine_config()
    inventory = services.load_inventory(domain, services.InventoryCache()) if domain else []

    existing = extract_existing_links(
        content,
        site_hostname=domain.hostname if domain else None,
        inventory_urls=[item.url for item in inventory],
        config=config,
    )
    inventory = inventory[:int(config.get('inventory_batch_size', 100))]

    return JsonResponse(
        {
            'reduced_content': reduce_content(content, config),
            'existing_links': [
                {'anchor_text': link.anchor_text, 'href': link.href, 'path': link.normalized_path}
                for link in existing
            ],
            'inventory': [
                {'url': item.url, 'title': item.title, 'role': item.role}
                for item in inventory
            ],
        }
    )


@login_required
@require_POST
def place_links(request: HttpRequest) -> JsonResponse:
    """Validate the model's suggestions and insert the accepted links.

    A usable content analysis feeds the scoring. Audit verdicts and inbound
    suggestions are returned after they were checked against the document
    and the inventory.
    """

    form = PlacementForm(request.POST)
    if not form.is_valid():
        return _form_errors(form)

    try:
        result, run = services.place_links(
            form.cleaned_data['content'],
            form.cleaned_data['candidates'],
            user=request.user,
            domain=form.cleaned_data['domain'],
            document_key=form.cleaned_data['document_key'],
            analysis=form.cleaned_data['analysis'],
            cache=services.InventoryCache(),
        )
    except DocumentError as exc:
        logger.info('Placement refused for %s: %s', request.user, exc)
        return JsonResponse({'errors': {'content': [{'message': str(exc), 'code': 'invalid'}]}}, status=400)

    insights = services.assess_links(
        result,
        form.cleaned_data['domain'],
        audit=form.cleaned_data['audit'],
        inbound=form.cleaned_data['inbound'],
        cache=services.InventoryCache(),
    )

    return JsonResponse(
        {
            'run': run.pk,
            'summary': result.summary,
            'html': result.html,
            'target_count': result.target_count,
            'accepted': [accepted.to_record() for accepted in result.accepted],
            'prior_kept': len(result.prior_kept),
            'rejections': [
                {
                    'anchor_text': rejection.candidate.anchor_text,
                    'target_url': rejection.candidate.target_url,
                    'reason': rejection.reason,
                    'detail': rejection.detail,
                }
                for rejection in result.rejections
            ],
            'analysis': asdict(result.analysis) if result.analysis else None,
            'audits': [asdict(audit) for audit in insights.audits],
            'inbound': [asdict(suggestion) for suggestion in insights.inbound],
            'errors': form.candidate_errors + form.analysis_errors + insights.errors,
        }
    )


@login_required
@require_GET
def placement_history(request: HttpRequest) -> JsonResponse:
    """List the signed-in user's most recent placement runs."""

    runs = (
        PlacementRun.objects
        .filter(user=request.user)
        .select_related('domain')
        .order_by('-created_at')[:HISTORY_LIMIT]
    )
    return JsonResponse(
        {
            'runs': [
                {
                    'id': run.pk,
                    'domain': run.domain.hostname if run.domain else None,
                    'document_key': run.document_key,
                    'candidate_total': run.candidate_total,
                    'accepted_total': run.accepted_total,
                    'rejection_counts': run.rejection_counts,
                    'created_at': run.created_at.isoformat(),
                }
                for run in runs
            ],
        }
    )

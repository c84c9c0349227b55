"""Managed Deployment templates shipped with the operator."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import jinja2
import yaml

from ..constants import DEPLOYMENT_MANIFEST, KIND_DEPLOYMENT
from ..utils.errors import TemplateError


@dataclass(frozen=True)
class DeploymentParams:
    """Parameters substituted into the Deployment template."""

    name: str = "nginx-deployment"
    replicas: int = 1
    image: str = "nginx:latest"
    container_port: int = 80


class TemplateRenderer:
    """Renders packaged manifests into Deployment bodies.

    Rendering is pure: the same parameters always produce an equal, freshly
    allocated dict, so callers may mutate the result.
    """

    def __init__(self, environment: jinja2.Environment):
        self._env = environment

    def render(
        self,
        params: DeploymentParams | None = None,
        template_name: str = DEPLOYMENT_MANIFEST,
    ) -> dict[str, Any]:
        """Render a Deployment manifest.

        Args:
            params: Template parameters, defaults when omitted
            template_name: Manifest file name under the manifests directory

        Returns:
            Deployment body as a dict

        Raises:
            TemplateError: If the asset is missing, a parameter is undefined,
                or the output is not a valid Deployment document
        """
        params = params or DeploymentParams()
        try:
            template = self._env.get_template(template_name)
            rendered = template.render(asdict(params))
        except jinja2.TemplateNotFound as e:
            raise TemplateError(f"template asset {e.name} not found") from e
        except jinja2.TemplateError as e:
            raise TemplateError(f"failed to render {template_name}: {e}") from e

        try:
            obj = yaml.safe_load(rendered)
        except yaml.YAMLError as e:
            raise TemplateError(f"{template_name} is not valid YAML: {e}") from e

        if not isinstance(obj, dict):
            raise TemplateError(f"{template_name} did not render to a mapping")
        if obj.get("apiVersion") != "apps/v1" or obj.get("kind") != KIND_DEPLOYMENT:
            raise TemplateError(
                f"{template_name} rendered {obj.get('apiVersion')}/{obj.get('kind')}, expected apps/v1/Deployment"
            )
        return obj


def load_templates(loader: jinja2.BaseLoader | None = None) -> TemplateRenderer:
    """Create the template renderer.

    Args:
        loader: Jinja loader to use; defaults to the packaged manifests

    Raises:
        TemplateError: If the packaged manifests directory cannot be found
    """
    if loader is None:
        try:
            loader = jinja2.PackageLoader("nginx_operator", "assets/manifests")
        except ValueError as e:
            raise TemplateError(f"manifest assets are not available: {e}") from e

    environment = jinja2.Environment(
        loader=loader,
        undefined=jinja2.StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
    )
    return TemplateRenderer(environment)

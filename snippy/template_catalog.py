"""Built-in command templates and `{variable}` expansion."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Tuple


@dataclass(frozen=True)
class Template:
    id: str
    title: str
    placeholder: str
    variables: Tuple[str, ...] = ()


_TEMPLATES: Tuple[Template, ...] = (
    Template(
        id="kubernetes",
        title="Kubernetes Deployment",
        placeholder=(
            "kubectl apply -f deployment.yaml\n"
            "kubectl get pods\n"
            "kubectl get services"
        ),
    ),
    Template(
        id="docker",
        title="Docker Build & Push",
        placeholder=(
            "docker build -t {image_name}:{tag} .\n"
            "docker push {image_name}:{tag}"
        ),
        variables=("image_name", "tag"),
    ),
    Template(
        id="git",
        title="Git Operations",
        placeholder=(
            "git checkout -b {branch_name}\n"
            "git add .\n"
            'git commit -m "{commit_message}"\n'
            "git push origin {branch_name}"
        ),
        variables=("branch_name", "commit_message"),
    ),
    Template(
        id="aws",
        title="AWS CLI",
        placeholder=(
            "aws s3 cp {local_path} s3://{bucket_name}/\n"
            "aws ec2 describe-instances"
        ),
        variables=("local_path", "bucket_name"),
    ),
    Template(
        id="custom",
        title="Custom Script",
        placeholder="Enter your custom commands here...",
    ),
)

TEMPLATES: Dict[str, Template] = {template.id: template for template in _TEMPLATES}


def _lookup(template_id: str) -> Template:
    try:
        return TEMPLATES[template_id]
    except KeyError:
        raise KeyError(f"Unknown template: {template_id}") from None


def list_templates() -> List[str]:
    return [template.id for template in _TEMPLATES]


def placeholder_for(template_id: str) -> str:
    return _lookup(template_id).placeholder


def variables_for(template_id: str) -> List[str]:
    return list(_lookup(template_id).variables)


def expand(template_id: str, values: Mapping[str, str]) -> str:
    """Substitute supplied values into the template's placeholder text.

    Only the template's own variables are replaced, and only when a value is
    given; any other `{token}` stays in the text so an unfilled field remains
    visible to the user.
    """
    text = placeholder_for(template_id)
    for name in variables_for(template_id):
        if name in values and values[name] is not None:
            text = text.replace("{" + name + "}", str(values[name]))
    return text


def get_template(template_id: str) -> Dict[str, Any]:
    template = _lookup(template_id)
    return {
        "id": template.id,
        "title": template.title,
        "placeholder": template.placeholder,
        "variables": list(template.variables),
    }


def describe_templates() -> List[Dict[str, Any]]:
    return [get_template(template_id) for template_id in list_templates()]

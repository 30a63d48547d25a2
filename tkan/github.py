"""
GitHub Projects (v2) backend.

Talks to the GraphQL API with requests. A project's "Status" single-select
field is mapped onto the fixed tkan columns; moves are pushed per card
(tracks_moves), so save_board has nothing to do.

Auth: a token with the `project` scope, from $GITHUB_TOKEN or $GH_TOKEN
(`gh auth token` prints one).
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from .errors import LoadError, RemoteError, TkanError
from .schema import ARCHIVE_COLUMN, DEFAULT_COLUMNS, Board, Card, parse_timestamp, utc_now
from .store import Backend

logger = logging.getLogger(__name__)

API_URL = "https://api.github.com/graphql"
DEFAULT_TIMEOUT = 10.0
PAGE_SIZE = 100

STATUS_TO_COLUMN = {
    "Backlog": "BACKLOG",
    "Todo": "TODO",
    "To Do": "TODO",
    "In Progress": "PROGRESS",
    "In Review": "REVIEW",
    "Review": "REVIEW",
    "Done": "DONE",
    "Closed": ARCHIVE_COLUMN,
    "Archive": ARCHIVE_COLUMN,
}

COLUMN_TO_STATUS = {
    "BACKLOG": "Backlog",
    "TODO": "Todo",
    "PROGRESS": "In Progress",
    "REVIEW": "In Review",
    "DONE": "Done",
    ARCHIVE_COLUMN: "Archive",
}

PROJECT_QUERY = """
query($owner: String!, $number: Int!, $cursor: String) {
  %(owner_type)s(login: $owner) {
    projectV2(number: $number) {
      id
      title
      shortDescription
      url
      createdAt
      field(name: "Status") {
        ... on ProjectV2SingleSelectField { id options { id name } }
      }
      items(first: %(page)d, after: $cursor) {
        pageInfo { hasNextPage endCursor }
        nodes {
          id
          createdAt
          updatedAt
          status: fieldValueByName(name: "Status") {
            ... on ProjectV2ItemFieldSingleSelectValue { name }
          }
          due: fieldValueByName(name: "Target Date") {
            ... on ProjectV2ItemFieldDateValue { date }
          }
          content {
            __typename
            ... on DraftIssue {
              id title body
              assignees(first: 1) { nodes { login } }
            }
            ... on Issue {
              id title body url
              repository { name }
              labels(first: 20) { nodes { name } }
              assignees(first: 1) { nodes { login } }
            }
            ... on PullRequest {
              id title body url
              repository { name }
              labels(first: 20) { nodes { name } }
              assignees(first: 1) { nodes { login } }
            }
          }
        }
      }
    }
  }
}
"""

LIST_PROJECTS_QUERY = """
query($owner: String!) {
  %(owner_type)s(login: $owner) {
    projectsV2(first: 100) { nodes { number title } }
  }
}
"""

VIEWER_PROJECTS_QUERY = """
query {
  viewer { login projectsV2(first: 100) { nodes { number title } } }
}
"""

SET_STATUS_MUTATION = """
mutation($project: ID!, $item: ID!, $field: ID!, $option: String!) {
  updateProjectV2ItemFieldValue(input: {
    projectId: $project, itemId: $item, fieldId: $field,
    value: { singleSelectOptionId: $option }
  }) { projectV2Item { id } }
}
"""

ADD_DRAFT_MUTATION = """
mutation($project: ID!, $title: String!, $body: String) {
  addProjectV2DraftIssue(input: { projectId: $project, title: $title, body: $body }) {
    projectItem { id content { ... on DraftIssue { id } } }
  }
}
"""

UPDATE_MUTATIONS = {
    "DraftIssue": """
mutation($id: ID!, $title: String!, $body: String) {
  updateProjectV2DraftIssue(input: { draftIssueId: $id, title: $title, body: $body }) {
    draftIssue { id }
  }
}
""",
    "Issue": """
mutation($id: ID!, $title: String!, $body: String) {
  updateIssue(input: { id: $id, title: $title, body: $body }) { issue { id } }
}
""",
    "PullRequest": """
mutation($id: ID!, $title: String!, $body: String) {
  updatePullRequest(input: { pullRequestId: $id, title: $title, body: $body }) {
    pullRequest { id }
  }
}
""",
}


def status_to_column(status: Optional[str]) -> str:
    """Project Status option name -> tkan column. Unknown or unset -> BACKLOG."""
    if not status:
        return "BACKLOG"
    return STATUS_TO_COLUMN.get(status, "BACKLOG")


def graphql(query: str, variables: Optional[Dict[str, Any]] = None, token: Optional[str] = None,
            api_url: str = API_URL, timeout: float = DEFAULT_TIMEOUT,
            error_cls=RemoteError) -> Dict[str, Any]:
    """POST one GraphQL request and return its `data`. Raises error_cls."""
    headers = {"Content-Type": "application/json", "Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    try:
        r = requests.post(
            api_url,
            json={"query": query, "variables": variables or {}},
            headers=headers,
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise error_cls(f"GitHub request failed: {e}") from e

    if not r.ok:
        raise error_cls(f"GitHub API returned {r.status_code}: {r.text[:200]}")
    try:
        payload = r.json()
    except ValueError as e:
        raise error_cls(f"GitHub API returned invalid JSON: {e}") from e

    errors = payload.get("errors")
    if errors:
        messages = "; ".join(str(err.get("message", err)) for err in errors)
        raise error_cls(f"GitHub API error: {messages}")
    return payload.get("data") or {}


def list_github_projects(owner: str, token: Optional[str] = None, api_url: str = API_URL,
                         timeout: float = DEFAULT_TIMEOUT) -> List[Tuple[str, int, str]]:
    """(owner, number, title) for every project of a user or organization.

    owner "@me" lists the authenticated user's projects.
    """
    if owner in ("", "@me"):
        data = graphql(VIEWER_PROJECTS_QUERY, token=token, api_url=api_url,
                       timeout=timeout, error_cls=LoadError)
        viewer = data.get("viewer") or {}
        login = viewer.get("login", owner)
        nodes = (viewer.get("projectsV2") or {}).get("nodes") or []
        return [(login, n["number"], n.get("title", "")) for n in nodes if n]

    last_error: Optional[TkanError] = None
    for owner_type in ("user", "organization"):
        try:
            data = graphql(LIST_PROJECTS_QUERY % {"owner_type": owner_type}, {"owner": owner},
                           token=token, api_url=api_url, timeout=timeout, error_cls=LoadError)
        except LoadError as e:
            last_error = e
            continue
        holder = data.get(owner_type)
        if holder:
            nodes = (holder.get("projectsV2") or {}).get("nodes") or []
            return [(owner, n["number"], n.get("title", "")) for n in nodes if n]
    raise last_error or LoadError(f"no projects found for {owner}")


class GitHubBackend(Backend):
    """Board backed by a GitHub project."""

    tracks_moves = True

    def __init__(self, owner: str, number: int, repo: Optional[str] = None,
                 token: Optional[str] = None, api_url: str = API_URL,
                 timeout: float = DEFAULT_TIMEOUT):
        self.owner = owner
        self.number = number
        self.repo = repo
        self.token = token
        self.api_url = api_url
        self.timeout = timeout

        # Filled in by load_board()
        self.project_id: Optional[str] = None
        self.status_field_id: Optional[str] = None
        self.status_options: Dict[str, str] = {}  # option name -> option id
        self._content: Dict[str, Tuple[str, str]] = {}  # item id -> (typename, content id)

    def __repr__(self) -> str:
        return f"GitHubBackend({self.owner!r}, {self.number})"

    def _query(self, query: str, variables: Dict[str, Any], error_cls=RemoteError) -> Dict[str, Any]:
        return graphql(query, variables, token=self.token, api_url=self.api_url,
                       timeout=self.timeout, error_cls=error_cls)

    # ── loading ────────────────────────────────────────────────────────────

    def _fetch_project(self, owner_type: str) -> Optional[Dict[str, Any]]:
        """All pages of the project under user or organization; None if not found."""
        query = PROJECT_QUERY % {"owner_type": owner_type, "page": PAGE_SIZE}
        project: Optional[Dict[str, Any]] = None
        nodes: List[Dict[str, Any]] = []
        cursor = None
        while True:
            data = self._query(query, {"owner": self.owner, "number": self.number, "cursor": cursor},
                               error_cls=LoadError)
            holder = data.get(owner_type) or {}
            page = holder.get("projectV2")
            if not page:
                return None
            if project is None:
                project = page
            items = page.get("items") or {}
            nodes.extend(n for n in items.get("nodes") or [] if n)
            info = items.get("pageInfo") or {}
            if not info.get("hasNextPage"):
                break
            cursor = info.get("endCursor")
        project["items"] = {"nodes": nodes}
        return project

    def load_board(self) -> Board:
        project = None
        last_error: Optional[LoadError] = None
        for owner_type in ("user", "organization"):
            try:
                project = self._fetch_project(owner_type)
            except LoadError as e:
                last_error = e
                continue
            if project:
                break
        if not project:
            raise last_error or LoadError(f"project {self.owner}/{self.number} not found")

        self.project_id = project.get("id")
        field = project.get("field") or {}
        self.status_field_id = field.get("id")
        self.status_options = {o["name"]: o["id"] for o in field.get("options") or []}
        self._content = {}

        board = Board(
            name=project.get("title") or "GitHub Project",
            description=project.get("shortDescription") or "",
            columns=list(DEFAULT_COLUMNS),
            url=project.get("url") or f"https://github.com/users/{self.owner}/projects/{self.number}",
            created_at=parse_timestamp(project.get("createdAt")),
            modified_at=utc_now(),
        )
        for item in project["items"]["nodes"]:
            card = self._item_to_card(item)
            if card is not None:
                board.add_card(card)

        logger.info(f"Loaded GitHub project {self.owner}/{self.number}: {len(board.cards)} cards")
        return board

    def _item_to_card(self, item: Dict[str, Any]) -> Optional[Card]:
        content = item.get("content") or {}
        typename = content.get("__typename", "DraftIssue")
        if self.repo and typename != "DraftIssue":
            repo = (content.get("repository") or {}).get("name")
            if repo and repo != self.repo:
                return None
        if content.get("id"):
            self._content[item["id"]] = (typename, content["id"])

        labels = (content.get("labels") or {}).get("nodes") or []
        assignees = (content.get("assignees") or {}).get("nodes") or []
        status = (item.get("status") or {}).get("name")
        due = (item.get("due") or {}).get("date") or ""

        return Card(
            card_id=item["id"],
            title=content.get("title") or "",
            description=content.get("body") or "",
            tags=[lbl["name"] for lbl in labels if lbl and lbl.get("name")],
            assignee=assignees[0]["login"] if assignees and assignees[0] else "",
            due_date=due,
            column=status_to_column(status),
            url=content.get("url") or "",
            created_at=parse_timestamp(item.get("createdAt")),
            modified_at=parse_timestamp(item.get("updatedAt")),
        )

    # ── updates ────────────────────────────────────────────────────────────

    def save_board(self, board: Board) -> None:
        # Every change is pushed as it happens
        logger.debug("save_board: nothing to do for GitHub projects")

    def _option_for(self, column_name: str) -> Optional[str]:
        preferred = COLUMN_TO_STATUS.get(column_name)
        if preferred in self.status_options:
            return self.status_options[preferred]
        for name, option_id in self.status_options.items():
            if STATUS_TO_COLUMN.get(name) == column_name:
                return option_id
        return None

    def move_card(self, card_id: str, column_name: str) -> None:
        if not self.project_id or not self.status_field_id:
            raise RemoteError("project has no Status field (or the board was never loaded)")
        option = self._option_for(column_name)
        if option is None:
            raise RemoteError(f"project Status has no option for column {column_name}")
        self._query(SET_STATUS_MUTATION, {
            "project": self.project_id,
            "item": card_id,
            "field": self.status_field_id,
            "option": option,
        })
        logger.info(f"GitHub item {card_id} -> {column_name}")

    def create_card(self, board: Board, title: str, description: str, column_name: str) -> Card:
        if not self.project_id:
            raise RemoteError("board was never loaded")
        data = self._query(ADD_DRAFT_MUTATION, {
            "project": self.project_id,
            "title": title,
            "body": description,
        })
        item = (data.get("addProjectV2DraftIssue") or {}).get("projectItem") or {}
        item_id = item.get("id")
        if not item_id:
            raise RemoteError("GitHub did not return the new item id")
        draft_id = (item.get("content") or {}).get("id")
        if draft_id:
            self._content[item_id] = ("DraftIssue", draft_id)

        self.move_card(item_id, column_name)
        now = utc_now()
        return Card(card_id=item_id, title=title, description=description,
                    column=column_name, created_at=now, modified_at=now)

    def update_card(self, card: Card) -> None:
        typename, content_id = self._content.get(card.card_id, (None, None))
        mutation = UPDATE_MUTATIONS.get(typename)
        if not content_id or mutation is None:
            raise RemoteError(f"item {card.card_id} cannot be edited from here")
        self._query(mutation, {"id": content_id, "title": card.title, "body": card.description})
        logger.info(f"GitHub item {card.card_id} updated")

    def delete_card(self, card_id: str) -> None:
        """GitHub items are archived, not deleted."""
        self.move_card(card_id, ARCHIVE_COLUMN)

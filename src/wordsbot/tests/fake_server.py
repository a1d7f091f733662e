"""In-memory Words API used by the tests."""
import json
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx

BASE_URL = "http://words.test/api"


def make_word_entry(word: str, definitions_per_meaning: int = 3) -> Dict[str, Any]:
    """Build a dictionary payload shaped like the server's word lookup."""
    return {
        "word": word,
        "phonetic": f"/{word}/",
        "meanings": [
            {
                "partOfSpeech": "noun",
                "definitions": [
                    {"definition": f"{word} definition {i}", "example": f"An example of {word} {i}."}
                    for i in range(1, definitions_per_meaning + 1)
                ],
            },
            {
                "partOfSpeech": "verb",
                "definitions": [{"definition": f"to {word}"}],
            },
        ],
    }


class FakeWordsServer:
    """In-memory stand-in for the Words API, served through httpx.MockTransport."""

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.dictionary: Dict[str, Dict[str, Any]] = {}
        self.study_lists: Dict[str, List[Dict[str, Any]]] = {}
        self.due: Dict[str, List[str]] = {}
        self.reviews: List[Tuple[str, str, int]] = []
        self.stats: Dict[str, Dict[str, Any]] = {}
        self.requests: List[httpx.Request] = []
        self._failures: List[Tuple[str, str, Callable[[httpx.Request], httpx.Response]]] = []
        self._next_id = 1

    # --- Setup helpers ---

    def add_user(self, username: str) -> Dict[str, Any]:
        user = {"id": self._next_id, "username": username, "created_at": "2025-01-01T00:00:00Z"}
        self._next_id += 1
        self.users[username] = user
        return user

    def add_dictionary_word(self, word: str, definitions_per_meaning: int = 3) -> None:
        self.dictionary[word] = make_word_entry(word, definitions_per_meaning)

    def set_due(self, username: str, words: List[str]) -> None:
        self.due[username] = list(words)
        for word in words:
            self.dictionary.setdefault(word, make_word_entry(word))

    def fail(self, method: str, path: str, status: int = 500, body: Any = None,
             error: Optional[Exception] = None, times: int = 1) -> None:
        """Make the next `times` matching requests fail."""
        def respond(request: httpx.Request) -> httpx.Response:
            if error is not None:
                raise error
            if isinstance(body, (bytes, str)):
                return httpx.Response(status, content=body)
            return httpx.Response(status, json=body if body is not None else {"error": "internal error"})
        for _ in range(times):
            self._failures.append((method, path, respond))

    # --- Inspection helpers ---

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> List[httpx.Request]:
        return [
            request for request in self.requests
            if (method is None or request.method == method)
            and (path is None or request.url.path == path)
        ]

    # --- Request handling ---

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        for index, (method, fail_path, respond) in enumerate(self._failures):
            if method == request.method and fail_path == path:
                del self._failures[index]
                return respond(request)

        route = path[len("/api"):]
        for pattern, method, handler in self.routes:
            match = re.fullmatch(pattern, route)
            if match and request.method == method:
                return handler(self, request, *match.groups())
        return httpx.Response(404, json={"error": "route not found"})

    def _create_user(self, request):
        username = json.loads(request.content)["username"]
        if username in self.users:
            return httpx.Response(409, json={"error": "username already exists"})
        return httpx.Response(201, json=self.add_user(username))

    def _get_user(self, request, username):
        if username not in self.users:
            return httpx.Response(404, json={"error": "user not found"})
        return httpx.Response(200, json=self.users[username])

    def _get_stats(self, request, username):
        if username not in self.users:
            return httpx.Response(404, json={"error": "user not found"})
        words = self.study_lists.get(username, [])
        stats = {
            "username": username,
            "total_words": len(words),
            "due_today": len(self.due.get(username, [])),
            "learning": len(words),
            "reviewing": 0,
            "mastered": 0,
            "total_reviews": len([r for r in self.reviews if r[0] == username]),
        }
        stats.update(self.stats.get(username, {}))
        return httpx.Response(200, json=stats)

    def _get_word(self, request, word):
        if word not in self.dictionary:
            return httpx.Response(404, json={"error": "word not found"})
        return httpx.Response(200, json=self.dictionary[word])

    def _add_word(self, request, username, word):
        if username not in self.users:
            return httpx.Response(404, json={"error": "user not found"})
        if word not in self.dictionary:
            return httpx.Response(404, json={"error": "word not found"})
        words = self.study_lists.setdefault(username, [])
        if any(w["word"] == word for w in words):
            return httpx.Response(409, json={"error": "word already in study list"})
        entry = {
            "id": len(words) + 1,
            "word": word,
            "added_at": "2025-03-05T10:00:00Z",
            "next_review_date": "2025-03-06T10:00:00Z",
            "interval_days": 1,
            "ease_factor": 2.5,
            "status": "learning",
        }
        words.append(entry)
        return httpx.Response(201, json={"message": "word added to study list", "word": word})

    def _list_words(self, request, username):
        status = request.url.params.get("status")
        words = [w for w in self.study_lists.get(username, []) if not status or w["status"] == status]
        return httpx.Response(200, json={"words": words, "count": len(words)})

    def _due_words(self, request, username):
        if username not in self.users:
            return httpx.Response(404, json={"error": "user not found"})
        words = [{"word": w, "status": "learning"} for w in self.due.get(username, [])]
        return httpx.Response(200, json={"words": words, "count": len(words)})

    def _submit_review(self, request, username, word):
        quality = json.loads(request.content)["quality"]
        if not 0 <= quality <= 5:
            return httpx.Response(400, json={"error": "quality must be between 0 and 5"})
        self.reviews.append((username, word, quality))
        return httpx.Response(200, json={"word": word, "interval_days": 1, "ease_factor": 2.5})

    def _history(self, request, username, word):
        history = [
            {"word": w, "quality": q, "reviewed_at": "2025-03-05T10:00:00Z", "interval_days": 1, "ease_factor": 2.5}
            for u, w, q in self.reviews if u == username and w == word
        ]
        return httpx.Response(200, json={"history": history, "count": len(history)})

    def _logout(self, request):
        return httpx.Response(200, json={"message": "logged out"})

    routes = [
        (r"/users", "POST", _create_user),
        (r"/users/([^/]+)", "GET", _get_user),
        (r"/users/([^/]+)/stats", "GET", _get_stats),
        (r"/words/([^/]+)", "GET", _get_word),
        (r"/users/([^/]+)/words/([^/]+)", "POST", _add_word),
        (r"/users/([^/]+)/words", "GET", _list_words),
        (r"/users/([^/]+)/review", "GET", _due_words),
        (r"/users/([^/]+)/review/([^/]+)", "POST", _submit_review),
        (r"/users/([^/]+)/review/([^/]+)/history", "GET", _history),
        (r"/auth/logout", "POST", _logout),
    ]

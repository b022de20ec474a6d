"""Pattern tables used for fabrication detection.

Each table is plain data so it can be unit-tested against known true and
false examples independently of the code that consumes it.
"""

import re

# =============================================================================
# Tech terms
# =============================================================================

TECH_TERMS = frozenset({
    # Languages
    "python", "java", "javascript", "typescript", "c++", "c#", "ruby", "golang", "rust",
    "kotlin", "scala", "php", "perl", "matlab", "sql", "html", "css", "bash",
    # Frameworks
    "react", "angular", "vue", "node.js", "express.js", "django", "flask", "fastapi", "spring boot",
    "rails", "laravel", "next.js", "nestjs", ".net", "graphql", "grpc",
    # Data stores
    "mysql", "postgresql", "mongodb", "redis", "elasticsearch", "dynamodb", "cassandra",
    "oracle", "snowflake", "bigquery", "sqlite",
    # Cloud and DevOps
    "aws", "azure", "gcp", "docker", "kubernetes", "terraform", "ansible", "jenkins",
    "circleci", "github", "gitlab", "github actions", "linux", "git", "ci/cd", "s3", "ec2",
    "lambda", "cloudformation", "prometheus", "grafana", "datadog",
    # Data and ML
    "tensorflow", "pytorch", "pandas", "numpy", "scikit-learn", "spark", "hadoop", "kafka",
    "airflow", "dbt", "tableau", "power bi", "looker", "excel",
    # APIs and architecture
    "api", "microservices", "rabbitmq",
    # Process and tools
    "agile", "scrum", "kanban", "jira", "confluence", "figma", "salesforce", "hubspot",
})

# Terms that are ordinary English words unless written with this exact casing.
CASE_SENSITIVE_TECH_TERMS = frozenset({"REST", "Go", "R", "Swift", "Helm", "Express", "Spring"})

# Variant spellings mapped onto the catalog spelling.
TECH_ALIASES = {
    "node": "node.js",
    "nodejs": "node.js",
    "nextjs": "next.js",
    "js": "javascript",
    "ts": "typescript",
    "postgres": "postgresql",
    "k8s": "kubernetes",
    "go": "golang",
    "sklearn": "scikit-learn",
    "google cloud": "gcp",
    "amazon web services": "aws",
    "cicd": "ci/cd",
    "apis": "api",
    "expressjs": "express.js",
}


def _term_pattern(term: str, flags: int = re.IGNORECASE) -> re.Pattern:
    return re.compile(rf"(?<![\w.+#/]){re.escape(term)}(?![\w+#/]|\.\w)", flags)


# Longest first so "github actions" wins over "github".
TECH_TERM_PATTERNS = [
    (term, _term_pattern(term))
    for term in sorted(TECH_TERMS | (set(TECH_ALIASES) - {"go"}), key=len, reverse=True)
] + [
    # "Go-to-market" is not the language
    (term.lower(), re.compile(rf"(?<![\w.+#/]){re.escape(term)}(?![\w+#/-]|\.\w)"))
    for term in sorted(CASE_SENSITIVE_TECH_TERMS, key=len, reverse=True)
]


def canonical_tech_term(term: str) -> str:
    """Lower-case a tech term and resolve aliases to one spelling."""
    term = term.strip().lower()
    return TECH_ALIASES.get(term, term)


# Tools only worth surfacing when the bullet is about a related domain.
TOOL_RELEVANCE = {
    "python": ("api", "backend", "data", "script", "automation", "pipeline", "service", "ml", "analysis"),
    "javascript": ("frontend", "web", "ui", "api", "backend", "browser"),
    "typescript": ("frontend", "web", "ui", "api", "backend"),
    "react": ("frontend", "ui", "web", "interface", "dashboard", "component"),
    "node.js": ("backend", "api", "server", "service", "development"),
    "sql": ("database", "data", "query", "report", "analytics", "warehouse"),
    "postgresql": ("database", "data", "backend", "query"),
    "docker": ("deploy", "container", "infrastructure", "devops", "service", "backend"),
    "kubernetes": ("deploy", "container", "infrastructure", "cluster", "devops", "scaling"),
    "aws": ("cloud", "infrastructure", "deploy", "backend", "migration", "hosting"),
    "tensorflow": ("ml", "model", "machine learning", "training", "prediction", "ai"),
    "pytorch": ("ml", "model", "machine learning", "training", "research", "ai"),
    "tableau": ("dashboard", "report", "analytics", "visualization", "data"),
    "excel": ("report", "analysis", "model", "forecast", "budget", "data"),
    "jira": ("sprint", "planning", "project", "agile", "tracking"),
    "figma": ("design", "prototype", "ui", "ux", "mockup"),
}

# =============================================================================
# Numbers
# =============================================================================

NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6, "seven": 7, "eight": 8,
    "nine": 9, "ten": 10, "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14,
    "fifteen": 15, "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19,
    "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50, "sixty": 60, "seventy": 70,
    "eighty": 80, "ninety": 90, "hundred": 100, "thousand": 1_000, "million": 1_000_000,
    "billion": 1_000_000_000, "dozen": 12,
}

# Longest first so "seventeen" wins over "seven".
_NUMBER_WORD = "|".join(sorted(NUMBER_WORDS, key=len, reverse=True))

# Ordered most specific first; overlapping matches keep the earliest, longest span.
NUMBER_PATTERNS = [
    ("percentage", re.compile(
        rf"\d+(?:\.\d+)?\s?(?:%|percent\b)|\b(?:{_NUMBER_WORD})[\s-]percent\b", re.IGNORECASE
    )),
    ("currency", re.compile(r"\$\s?\d(?:[\d,]*\d)?(?:\.\d+)?(?:\s?[KMB](?!\w))?\+?", re.IGNORECASE)),
    ("scaled", re.compile(r"\b\d+(?:\.\d+)?[KMB]\+?(?!\w)", re.IGNORECASE)),
    ("multiplier", re.compile(r"\b\d+(?:\.\d+)?[x×](?!\w)|(?<![\w])[x×]\d+(?:\.\d+)?\b", re.IGNORECASE)),
    ("plain", re.compile(r"\b\d(?:[\d,]*\d)?(?:\.\d+)?\+?")),
    ("word", re.compile(rf"\b(?:{_NUMBER_WORD})\b", re.IGNORECASE)),
]

SCALE_SUFFIXES = {"k": 1_000, "m": 1_000_000, "b": 1_000_000_000}

# =============================================================================
# Companies
# =============================================================================

_CAP_WORD = r"[A-Z][A-Za-z0-9&'.-]*"

COMPANY_PATTERNS = [
    # "at Goldman Sachs", "with Acme Health"
    re.compile(rf"\b(?:at|with|for|from|by|across)\s+({_CAP_WORD}(?:\s+{_CAP_WORD})*)"),
    # "Acme Corp", "Initech Inc."
    re.compile(
        rf"\b({_CAP_WORD}(?:\s+{_CAP_WORD})*\s+"
        r"(?:Inc|Corp|Corporation|LLC|Ltd|Co))\b\.?"
    ),
]

# Capitalized words that never name a company on their own.
COMPANY_STOP_WORDS = frozenset({
    "the", "a", "an", "our", "my", "their", "team", "teams", "company", "department",
    "engineering", "product", "sales", "marketing", "finance", "operations", "leadership",
    "management", "customers", "clients", "stakeholders", "users", "partners", "executives",
    "i", "we", "q1", "q2", "q3", "q4", "ceo", "cto", "cfo", "vp", "senior", "junior",
    "january", "february", "march", "april", "may", "june", "july", "august", "september",
    "october", "november", "december", "monday", "friday",
})

# =============================================================================
# Words
# =============================================================================

STOP_WORDS = frozenset({
    "the", "and", "for", "with", "that", "this", "from", "into", "onto", "over", "under",
    "was", "were", "are", "is", "been", "being", "have", "has", "had", "its", "their",
    "our", "your", "his", "her", "they", "them", "who", "which", "what", "when", "where",
    "while", "also", "than", "then", "such", "via", "per", "across", "within", "through",
    "using", "use", "used", "all", "any", "each", "other", "more", "most", "some", "about",
    "after", "before", "by", "to", "of", "in", "on", "at", "as", "an", "a", "or", "it",
    "be", "not", "but", "so", "up", "out", "new",
})

STEM_SUFFIXES = ("ments", "ment", "tions", "tion", "ness", "ing", "est", "ies", "es", "ed", "er", "ly", "s")


# =============================================================================
# Matchers
# =============================================================================


def find_non_overlapping(text: str, patterns) -> list[tuple[int, int, str]]:
    """Return (start, end, label) for each match, earlier patterns winning overlaps."""
    taken: list[tuple[int, int, str]] = []
    for label, pattern in patterns:
        for match in pattern.finditer(text):
            start, end = match.span()
            if start == end:
                continue
            if any(start < t_end and end > t_start for t_start, t_end, _ in taken):
                continue
            taken.append((start, end, label))
    return sorted(taken)


def extract_tech_terms(text: str) -> list[str]:
    """Return canonical tech terms mentioned in text, in order of appearance."""
    terms = []
    for start, end, label in find_non_overlapping(text, TECH_TERM_PATTERNS):
        term = canonical_tech_term(label)
        if term not in terms:
            terms.append(term)
    return terms


def extract_company_names(text: str) -> list[str]:
    """Return capitalized sequences that look like organization names."""
    names = []
    for pattern in COMPANY_PATTERNS:
        for match in pattern.finditer(text):
            words = match.group(1).rstrip(".").split()
            while words and words[0].lower() in COMPANY_STOP_WORDS:
                words = words[1:]
            if not words:
                continue
            if all(
                w.lower() in COMPANY_STOP_WORDS or extract_tech_terms(w) or w.isupper()
                for w in words
            ):
                continue
            name = " ".join(words)
            if name not in names:
                names.append(name)
    return names

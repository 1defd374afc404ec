import pytest

from lab_manager.auth import Authenticator, Session
from lab_manager.config import RunConfig
from lab_manager.errors import ApiUnavailable
from lab_manager.models import ClusterList, GlobalRoleBinding, LoginResponse, Resource, Setting, User

# One registration token entry as the API renders it: a null literal and a
# Windows join command whose backslashes are not valid JSON escapes.
TOKEN_ENTRY = (
    '{"baseType":"clusterRegistrationToken","clusterId":"%s","token":"%s",'
    '"insecureCommand":null,'
    r'"windowsNodeCommand":"PowerShell -NoLogo -NonInteractive -Command \"& {docker run -v c:\:c:\host '
    r'rancher/rancher-agent:v2.9.2 bootstrap --server https://rancher.example.com --token %s | iex}\""}'
)


def token_listing(*pairs):
    entries = [TOKEN_ENTRY % (cluster_id, token, token) for cluster_id, token in pairs]
    return '{"type":"collection","data":[' + ",".join(entries) + "]}"


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


class FakeApi:
    """In-memory stand-in for RancherApi."""

    def __init__(self, *, reachable=(True,), logins=None, existing=(), fail_create=(),
                 missing_tokens=(), malformed_clusters=False):
        self.reachable = list(reachable)
        self.logins = list(logins) if logins is not None else [LoginResponse(token="token-abc")]
        self.clusters = [Resource(id=f"c-old{i}", name=name) for i, name in enumerate(existing)]
        self.created = []
        self.fail_create = set(fail_create)
        self.missing_tokens = set(missing_tokens)
        self.malformed_clusters = malformed_clusters
        self.probe_calls = 0
        self.login_calls = 0
        self.token_reads = 0
        self.settings = {"agent-tls-mode": "Strict"}
        self.put_ack = True
        self.puts = []
        self.users = {}
        self.created_users = []
        self.bindings = []

    def is_reachable(self):
        self.probe_calls += 1
        if len(self.reachable) > 1:
            return self.reachable.pop(0)
        return self.reachable[0]

    def login(self, username, password):
        self.login_calls += 1
        if len(self.logins) > 1:
            return self.logins.pop(0)
        return self.logins[0]

    def list_clusters(self):
        if self.malformed_clusters:
            raise ApiUnavailable("Unexpected response from /v3/clusters", '{"type":"error","status":500}')
        return ClusterList(data=list(self.clusters))

    def create_cluster(self, name):
        if name in self.fail_create:
            return Resource(type="error")
        cluster = Resource(id=f"c-{len(self.created) + 1:05d}", name=name)
        self.created.append(cluster)
        self.clusters.append(cluster)
        return cluster

    def registration_tokens_raw(self):
        self.token_reads += 1
        pairs = [(c.id, f"tok{c.id}") for c in self.created if c.name not in self.missing_tokens]
        return token_listing(*pairs)

    def get_setting(self, name):
        return Setting(id=name, name=name, value=self.settings.get(name))

    def put_setting(self, name, value):
        self.puts.append((name, value))
        if not self.put_ack:
            return Setting()
        self.settings[name] = value
        return Setting(id=name, name=name, value=value)

    def find_user(self, username):
        return self.users.get(username)

    def create_user(self, username, password, display_name):
        user = User(id=f"u-{len(self.users) + 1}", username=username, name=display_name)
        self.users[username] = user
        self.created_users.append((username, password))
        return user

    def find_role_binding(self, user_id, role):
        for index, (bound_user, bound_role) in enumerate(self.bindings, start=1):
            if (bound_user, bound_role) == (user_id, role):
                return GlobalRoleBinding(id=f"grb-{index}", userId=user_id, globalRoleId=role)
        return None

    def bind_global_role(self, user_id, role):
        self.bindings.append((user_id, role))
        return Resource(id=f"grb-{len(self.bindings)}")


def make_cfg(**overrides):
    values = {
        "rancher_url": "rancher.example.com",
        "default_pass": "s3cret",
        "rancher_version": "v2.9.2",
        "dsc_count": 2,
    }
    values.update(overrides)
    return RunConfig(**values)


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def cfg():
    return make_cfg()


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def authenticator(cfg, api, sleeper):
    return Authenticator(cfg, api, Session(), sleep=sleeper)

# k8sdemo

Small services and helpers in the style of Kubernetes cluster components:
a scheduler extender, two admission webhooks, example resource types, a
reconciler for an arithmetic resource and a volume-directory helper.
Everything runs on the Python standard library alone.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Commands

| Command | What it does |
| --- | --- |
| `k8sdemo-extender` | Serves the scheduler extender on port 80. The log level is read from the `LOG_LEVEL` environment variable (`TRACE`, `DEBUG`, `INFO`, `WARNING`, `ERROR`, `ALERT`, case-insensitive); anything else falls back to `INFO` with a warning. |
| `k8sdemo-pagination` | Serves `GET /api/resource` on port 8080. |
| `k8sdemo-provisioner` | Creates or deletes a volume directory: `k8sdemo-provisioner -a create -p /data/volume`, or `-a delete`. |
| `k8sdemo-annotator` | Serves the pod-annotating webhook at `/mutate` on port 9999 over TLS, with the certificate and key read from `cert/server.crt` and `cert/server.key` relative to the working directory. |
| `k8sdemo-admission` | Serves the label webhook at `/mutate` and `/validate` over TLS until SIGINT or SIGTERM. Options: `--port` (default 443), `--tlsCertFile` (default `/etc/webhook/certs/cert.pem`), `--tlsKeyFile` (default `/etc/webhook/certs/key.pem`). The single-dash forms `-port`, `-tlsCertFile` and `-tlsKeyFile` are accepted too. |

Each command accepts `--help`.

## Modules

### Scheduler extender: `k8sdemo.extender`, `k8sdemo.extender_server`

`Predicate`, `Prioritize`, `Bind` and `Preemption` each wrap a function and
offer `handler(args)`, which takes the JSON-shaped extender arguments as a
dict (field names matched case-insensitively) and returns the JSON-shaped
result:

- `Predicate.handler` keeps the nodes for which the function returns true;
  a node whose check raises is listed under `FailedNodes` with the message.
- `Prioritize.handler` returns the function's list of host priorities.
- `Bind.handler` returns `{"Error": ...}` with the message of any exception
  raised by the bind function, or an empty string.
- `Preemption.handler` returns `{"NodeNameToMetaVictims": ...}`.

`ExtenderRouter` registers these under `/scheduler/predicates/<name>`,
`/scheduler/priorities/<name>`, `/scheduler/bind` and
`/scheduler/preemption` (`add_predicate`, `add_prioritize`, `add_bind`,
`add_preemption`), and `/version` with `add_version`. A second bind or
preemption registration is ignored with a warning.
`dispatch(method, path, body)` returns `(status, headers, body)`, with 404
for unknown paths and 405 for a known path with the wrong method.
`make_server(router, host, port)` wraps a router in a threading HTTP server.
`string_to_level(name)` maps a level name to a `logging` level.

The `k8sdemo-extender` command registers an always-true predicate
(`always_true`), a zero-score priority (`zero_score`) and a bind handler that
always reports that binding is not supported. `/version` answers with an
empty string unless `ExtenderRouter` is given a version.

### Query defaults: `k8sdemo.pagination`

`parse_query(params)` reads `limit`, `offset` and `filter` into a
`ResourceQuery` and raises `ValueError` for a malformed or out-of-range
integer. `ResourceQuery.validate()` fills in defaults: `limit` 10 when not
positive, `offset` 0 when negative, `filter` `"all"` when empty.
`handle_resource(params)` returns `(status, body)`: 200 with the defaulted
values, or 400 with `{"error": ...}`. `make_server(host, port)` builds the
HTTP server.

### Volume directory helper: `k8sdemo.provisioner`

`run_action(action, path)` with `"create"` makes the directory and its
parents with mode 0777 (umask cleared); with `"delete"` removes it and
everything below it. It raises `ProvisionerError` for any other action, an
empty path, the path `/`, or a failed filesystem operation. The command
exits with status 1 and prints the message in those cases. The `-s` (size)
and `-m` (mode) options are accepted but not used.

### Resource types: `k8sdemo.apps`

The `XXX` resource of `apps.k8sdemo.io/v1beta1`: `XXX`, `XXXSpec`,
`XXXStatus`, `XXXPhase` (`Running`, `Pending`), `Condition`, `ObjectMeta`
and `XXXList`, with `to_dict` / `from_dict` for their JSON form.
`set_defaults_xxx` sets `generateName` to `hello-` and, through
`set_defaults_xxx_spec`, the display name to `xxxdefaulter` when they are
empty. `Scheme` records known kinds (`add_known_types`) and defaulting
functions (`add_defaulting_func`, `default`); `add_to_scheme(scheme)`
registers the XXX kinds and their defaulters. `resource(name)` returns a
`GroupResource` qualified with the group.

### Pod annotator webhook: `k8sdemo.annotator`

`mutate_pod_review(body)` takes an admission review of a pod and returns the
response review, allowing the pod with a JSON patch that sets the
annotation `apps.onex.io/miner-type` to `S1.SMALL1`. A body that is not a
usable review raises `AdmissionDecodeError`, which the server answers with
status 500. `make_server(host, port, cert_file, key_file)` builds the
server, using TLS when a certificate is given.

### Label admission webhook: `k8sdemo.admission`, `k8sdemo.admission_server`

`WebhookServer` handles Deployments and Services. `validate(review)` allows
an object only when it carries all six `app.kubernetes.io/*` labels
(`name`, `instance`, `version`, `component`, `part-of`, `managed-by`).
`mutate(review)` returns a JSON patch that adds the status annotation
`admission-webhook-example.qikqiak.com/status: mutated` and every missing
label with the value `not_available`. Objects in `kube-system` or
`kube-public` are let through, as are objects whose `.../validate` or
`.../mutate` annotation is `n`, `no`, `false` or `off`, and (for mutation)
objects already marked `mutated`. `serve(path, content_type, body)` returns
`(status, content_type, payload)`: 400 for an empty body, 415 unless the
content type is `application/json`.

The helpers `admission_required`, `mutation_required`,
`validation_required`, `update_annotation`, `update_labels`, `create_patch`
and `PatchOperation` are public. `admission_server.parse_args(argv)` returns
`ServerParameters`; `build_server(parameters, webhook)` builds the server.

### Calculate resource: `k8sdemo.calculate`, `k8sdemo.reconciler`

`Calculate` (group `math.superproj.com/v1`) holds a `CalculateSpec` with an
`ActionType` (`add`, `sub`, `mul`, `div`) and two integers, and a
`CalculateStatus` with the result. `validate_create()` and
`validate_update(old)` raise `CalculateValidationError` (holding
`FieldError` items) for division by zero; `validate_delete()` always allows.
`default()` turns a known action given as text into its `ActionType`.

`compute(spec)` returns the result in signed 64-bit arithmetic, with
division truncating toward zero, and raises `CalculationError` for a zero
divisor or an unknown action. `CalculateReconciler(store).reconcile(key)`
reads the object named by a `NamespacedName` from an `InMemoryStore`, computes
the result and stores it in the status; a missing object is not an error.
`InMemoryStore` offers `get`, `put`, `update_status` and `delete`, raising
`NotFoundError` for missing objects.

```python
from k8sdemo.calculate import ActionType, Calculate, CalculateSpec
from k8sdemo.apps import ObjectMeta
from k8sdemo.reconciler import CalculateReconciler, InMemoryStore, NamespacedName

store = InMemoryStore()
store.put(Calculate(metadata=ObjectMeta(name="six-by-three", namespace="default"),
                    spec=CalculateSpec(action=ActionType.DIV, first=6, second=3)))
key = NamespacedName("default", "six-by-three")
CalculateReconciler(store).reconcile(key)
print(store.get(key).status.result)  # 2
```

## What this package does not do

- It does not talk to a Kubernetes API server. The reconciler works only on
  the `InMemoryStore`, and there is no command that runs it as a controller,
  watches resources or performs leader election.
- The `Calculate` validation and defaulting are library calls; no server
  exposes them as admission webhooks.
- Resource types are plain dataclasses with their own JSON form; there is no
  generated client, deep-copy or conversion machinery.
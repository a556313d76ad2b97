import logging

logger = logging.getLogger(__name__)


class Transform:
    def __init__(
        self,
        name: str,
        input_keys: list[str],
        output_keys: list[str],
        critical: bool = True
    ):
        self.name = name or ""
        self.input_keys = input_keys or []
        self.output_keys = output_keys or []
        self.critical = critical

    def should_run(self, state: dict) -> bool:
        return all(k in state for k in self.input_keys)

    def forward(self, inputs: dict) -> dict:
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}({self.name}: {self.input_keys} -> {self.output_keys})"


class DAG:

    def __init__(self, transforms: list[Transform]):
        self.transforms = transforms
        self.execution_order = self._topo()

    def _topo(self) -> list[Transform]:
        """Order transforms so every key is produced before it is consumed.

        Keys nobody produces are treated as external inputs. Ties keep the
        order the transforms were given in.
        """
        producers = {}
        for t in self.transforms:
            for k in t.output_keys:
                producers.setdefault(k, t)

        visited = set()
        visiting = set()
        order = []

        def dfs(t):
            if t in visited:
                return
            if t in visiting:
                raise ValueError(f"Cycle detected at transform {t.name}")
            visiting.add(t)
            for k in t.input_keys:
                parent = producers.get(k)
                if parent is not None and parent is not t:
                    dfs(parent)
            visiting.discard(t)
            visited.add(t)
            order.append(t)

        for t in self.transforms:
            dfs(t)
        return order

    def forward(self, inputs: dict) -> dict:
        state = dict(inputs)
        for t in self.execution_order:
            if not t.should_run(state):
                missing = [k for k in t.input_keys if k not in state]
                if t.critical:
                    raise KeyError(f"Transform {t.name} missing inputs: {missing}")
                logger.warning(f"Transform {t.name} missing inputs {missing}, skipping")
                continue
            in_dict = {k: state[k] for k in t.input_keys}
            try:
                out = t.forward(in_dict)
                state.update(out)
            except Exception as e:
                if t.critical:
                    raise
                else:
                    logger.warning(f"Transform {t.name} failed: {e}, skipping")
        return state

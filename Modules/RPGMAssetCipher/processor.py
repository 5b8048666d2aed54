import asyncio
import logging
import uuid
import aiofiles
import aiofiles.os
import coloredlogs
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union
from rich.progress import Progress, TaskID

from ..log_format import LOG_LEVEL, LOG_FORMAT, FIELD_STYLE
from .cipher import has_rpgm_signature, restore, scramble, verify
from .errors import AssetCipherError, ErrorKind, IOFailureError, KeyUnresolvedError
from .key_recovery import is_complete, recover_from_file
from .model import AssetJob, AssetKey, BatchJob, BatchReport, KeyFill, Outcome, OutcomeStatus
from .registry import Direction, EngineVariant, classify, engine_of, is_scrambled_extension, target_extension

logger = logging.getLogger(__name__)
coloredlogs.install(level=LOG_LEVEL, logger=logger, fmt=LOG_FORMAT, field_styles=FIELD_STYLE)

DEFAULT_CONCURRENCY = 16

PlanEntry = Union[AssetJob, Outcome]


def enumerate_files(input_path: Path, single_file: bool = False) -> List[Path]:
    """List the files of a batch, a lone file or every regular file under a directory."""
    if input_path.is_file():
        return [input_path]
    if single_file:
        raise IOFailureError(f'Expected a file, got {input_path}')
    if not input_path.is_dir():
        raise IOFailureError(f'Input path does not exist: {input_path}')
    return sorted(path for path in input_path.rglob('*') if path.is_file())


def plan_jobs(files: Sequence[Path], root: Path, direction: Direction,
              engine: EngineVariant = EngineVariant.MV, output_dir: Optional[Path] = None) -> List[PlanEntry]:
    """Classify every file into a job, or into a skipped outcome when there is nothing to do."""
    output_root = output_dir if output_dir is not None else root
    plan: List[PlanEntry] = []
    claimed: Dict[Path, Path] = {}
    for file in files:
        kind = classify(file.suffix)
        if kind is None:
            plan.append(Outcome(source=file, status=OutcomeStatus.SKIPPED, reason='unknown extension'))
            continue
        scrambled = is_scrambled_extension(file.suffix)
        if direction == Direction.DECRYPT and not scrambled:
            plan.append(Outcome(source=file, status=OutcomeStatus.SKIPPED, kind=kind, reason='already restored'))
            continue
        if direction == Direction.ENCRYPT and scrambled:
            plan.append(Outcome(source=file, status=OutcomeStatus.SKIPPED, kind=kind, 
                                reason=f'already scrambled ({engine_of(file.suffix).value})'))
            continue
        relative = file.relative_to(root)
        target = (output_root / relative).with_suffix('.' + target_extension(kind, direction, engine))
        if target in claimed:
            # MV and MZ names of one asset restore to the same file
            plan.append(Outcome(source=file, target=target, kind=kind, status=OutcomeStatus.FAILED,
                                error=ErrorKind.IO_FAILURE, reason=f'output collides with {claimed[target]}'))
            continue
        claimed[target] = file
        plan.append(AssetJob(source=file, target=target, kind=kind, direction=direction))
    return plan


async def write_atomic(target: Path, data: bytes) -> None:
    """Write through a temporary sibling so the target is either complete or untouched."""
    tmp = target.with_name(f'.{target.name}.{uuid.uuid4().hex[:8]}.partial')
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(tmp, 'wb') as f:
            await f.write(data)
        await aiofiles.os.replace(tmp, target)
    except OSError as e:
        raise IOFailureError(f'Failed to write {target}: {e}') from e
    finally:
        if tmp.exists():
            tmp.unlink()


class AssetBatchProcessor:
    def __init__(self, input_path: Union[Path, str], direction: Direction, key: Optional[AssetKey] = None,
                 engine: EngineVariant = EngineVariant.MV, output_dir: Optional[Union[Path, str]] = None,
                 single_file: bool = False, strict: bool = False, concurrency: int = DEFAULT_CONCURRENCY,
                 key_fill: KeyFill = KeyFill.ZERO, show_progress: bool = True) -> None:
        self.input_path = Path(input_path)
        self.direction = direction
        self.key = key
        self.engine = engine
        self.output_dir = Path(output_dir) if output_dir is not None else None
        self.single_file = single_file
        self.strict = strict
        self.concurrency = max(1, concurrency)
        self.key_fill = key_fill
        self.show_progress = show_progress
        self._abort = asyncio.Event()

    @property
    def root(self) -> Path:
        return self.input_path.parent if self.input_path.is_file() else self.input_path

    async def resolve_key(self, jobs: Sequence[AssetJob]) -> AssetKey:
        """Use the explicit key, or recover one from the first file that yields it."""
        if self.key is not None:
            return self.key
        if self.direction == Direction.ENCRYPT:
            raise KeyUnresolvedError('Encryption requires a key')
        fallback: Optional[AssetKey] = None
        for job in jobs:
            try:
                key = await recover_from_file(job.source, self.key_fill)
            except AssetCipherError as e:
                logger.warning(f'Failed to recover key from {job.source.name}: {e}')
                continue
            if is_complete(job.kind):
                logger.info(f'Recovered key {key} from {job.source.name}')
                return key
            if fallback is None:
                fallback = key
        if fallback is not None:
            logger.warning(f'No asset with a fully known header found, using partially recovered key {fallback}')
            return fallback
        raise KeyUnresolvedError(f'No scrambled asset under {self.input_path} to recover the key from')

    async def transform(self, job: AssetJob, key: bytes) -> Outcome:
        try:
            async with aiofiles.open(job.source, 'rb') as f:
                data = await f.read()
        except OSError as e:
            raise IOFailureError(f'Failed to read {job.source}: {e}') from e
        if job.direction == Direction.DECRYPT:
            if not has_rpgm_signature(data):
                logger.warning(f'{job.source.name} does not start with the RPGMV signature')
            result = restore(data, key)
            verify(result, job.kind)
        else:
            result = scramble(data, key)
        await write_atomic(job.target, result)
        logger.info(f'{job.direction.value.capitalize()}ed {job.source.name} -> {job.target.name}')
        return Outcome(source=job.source, target=job.target, kind=job.kind, status=OutcomeStatus.WRITTEN)

    async def process_job(self, semaphore: asyncio.Semaphore, job: AssetJob, batch: BatchJob,
                          progress: Optional[Progress] = None, task_id: Optional[TaskID] = None) -> Optional[Outcome]:
        async with semaphore:
            if self._abort.is_set():
                return None
            try:
                outcome = await self.transform(job, batch.key)
            except AssetCipherError as e:
                logger.error(f'Failed to {job.direction.value} {job.source}: {e}')
                outcome = Outcome(source=job.source, target=job.target, kind=job.kind,
                                  status=OutcomeStatus.FAILED, error=e.kind, reason=str(e))
                if batch.strict:
                    self._abort.set()
            if progress:
                progress.update(task_id, advance=1)
            return outcome

    async def execute(self, batch: BatchJob) -> List[Optional[Outcome]]:
        # Strict batches run one file at a time so nothing starts after the first failure
        semaphore = asyncio.Semaphore(1 if batch.strict else self.concurrency)
        with Progress(disable=not self.show_progress) as _progress:
            _task_id = _progress.add_task(f'{self.direction.value.capitalize()}ing assets...', total=len(batch.jobs))
            _tasks = [self.process_job(semaphore, job, batch, _progress, _task_id) for job in batch.jobs]
            return await asyncio.gather(*_tasks)

    async def run(self) -> BatchReport:
        if self.direction == Direction.ENCRYPT and self.key is None:
            raise KeyUnresolvedError('Encryption requires a key')
        files = enumerate_files(self.input_path, self.single_file)
        plan = plan_jobs(files, self.root, self.direction, self.engine, self.output_dir)
        jobs = [entry for entry in plan if isinstance(entry, AssetJob)]
        if not jobs:
            logger.warning(f'Nothing to {self.direction.value} under {self.input_path}')
            return BatchReport(direction=self.direction, key=str(self.key) if self.key else None,
                               outcomes=[entry for entry in plan if isinstance(entry, Outcome)])

        key = await self.resolve_key(jobs)
        if self.strict and any(isinstance(entry, Outcome) and entry.status == OutcomeStatus.FAILED for entry in plan):
            self._abort.set()
        batch = BatchJob(jobs=tuple(jobs), key=key, strict=self.strict)
        results = iter(await self.execute(batch))

        outcomes: List[Outcome] = []
        for entry in plan:
            outcome = next(results) if isinstance(entry, AssetJob) else entry
            if outcome is not None:
                outcomes.append(outcome)
        report = BatchReport(direction=self.direction, key=str(key), outcomes=outcomes, aborted=self._abort.is_set())
        logger.info(f'{self.direction.value.capitalize()} finished: {report.written} written, '
                    f'{report.skipped} skipped, {report.failed} failed')
        return report

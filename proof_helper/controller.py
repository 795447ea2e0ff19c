from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from proof_helper import config
from proof_helper.agents import GenerationAdapter, OpenAIBackend, WireShape, describe_backend
from proof_helper.errors import ConfigurationError, InputError, ProofCancelled
from proof_helper.models import (
    ConvergenceCounters,
    ProofHelperParams,
    ProofResult,
    ProofStatus,
    RunOutcome,
    RunStatus,
    VerificationResult,
)
from proof_helper.operators import Generator, correct, draft, is_claimed_complete, verify
from proof_helper.persistence import OutputCallback, RunHandle, append_log, begin_run, finalize_run
from proof_helper.utils import CancellationToken, Stopwatch, load_problem

logger = logging.getLogger(__name__)


@dataclass
class RunMetrics:
    runs_attempted: int = 0
    iterations_total: int = 0
    verifications: int = 0
    corrections: int = 0


class ProofController:
    """Main orchestrator for the solve-verify-refine loop.

    Each outer run drafts from scratch, then alternates verification and
    correction until the candidate is accepted SUCCESS_THRESHOLD times in a
    row, rejected FAILURE_THRESHOLD times in a row, or MAX_ITERATIONS is hit.
    The first converged run wins; artifacts for all runs share one directory.
    """

    def __init__(
        self,
        params: ProofHelperParams,
        *,
        generator: Optional[Generator] = None,
        project_root: Optional[str | Path] = None,
        runs_dir: Optional[str | Path] = None,
        on_output: Optional[OutputCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ):
        self.params = params
        self.generator = generator or GenerationAdapter(params.model)
        self.project_root = Path(project_root) if project_root else Path.cwd()
        self.runs_dir = runs_dir
        self.on_output = on_output
        self.cancel = cancel or CancellationToken()
        self.other_prompts = list(params.other_prompts)

        self.problem = ""
        self.handle: Optional[RunHandle] = None
        self.metrics = RunMetrics()
        self.timer = Stopwatch()

    @property
    def run_dir(self) -> Optional[Path]:
        return self.handle.run_dir if self.handle else None

    def _log(self, line: str) -> None:
        if self.handle is not None:
            append_log(self.handle, line)

    def run(self) -> ProofResult:
        self.timer = Stopwatch()
        try:
            self.problem = load_problem(self.params.problem, self.params.problem_path)
        except InputError as e:
            logger.error("Invalid input: %s", e)
            return ProofResult(status=ProofStatus.INVALID_INPUT, message=str(e), error=str(e))

        try:
            handle = begin_run(
                self.problem,
                self.other_prompts,
                project_root=self.project_root,
                runs_dir=self.runs_dir,
                verbose=self.params.verbose,
                on_output=self.on_output,
            )
        except OSError as e:
            error = f"Could not create run directory: {e}"
            logger.error("%s", error)
            return ProofResult(
                status=ProofStatus.FAILED,
                message=error,
                error=error,
                metadata=self._build_metadata(),
            )
        self.handle = handle

        if self.cancel.cancelled:
            return self._aborted(handle)

        self._log_backend_selection()

        max_runs = self.params.max_runs
        last_error: Optional[str] = None

        for run_index in range(max_runs):
            if self.cancel.cancelled:
                return self._aborted(handle)

            self.metrics.runs_attempted += 1
            self._log(f"\n\n>>>>>>>>>>>>>>>>>>>>>>>>>> Run {run_index} of {max_runs} ...")
            logger.info("Starting run %d/%d", run_index + 1, max_runs)

            try:
                outcome = self.run_attempt(run_index)
            except ProofCancelled:
                return self._aborted(handle)
            except Exception as e:
                last_error = str(e) or type(e).__name__
                self._log(f">>>>>>> Error in run {run_index}: {last_error}")
                logger.warning("Run %d failed: %s", run_index, last_error)
                continue

            if outcome.status is RunStatus.CONVERGED and outcome.solution is not None:
                return self._solved(handle, outcome.solution)
            if outcome.status is RunStatus.ABORTED:
                return self._aborted(handle)
            last_error = outcome.error

        return self._failed(handle, last_error)

    def run_attempt(self, run_index: int) -> RunOutcome:
        """One outer run: draft, check completeness, then verify/correct until a threshold is hit."""
        log = self._log

        _, solution = draft(self.generator, self.problem, self.other_prompts, self.cancel, log=log)

        if not is_claimed_complete(self.generator, solution, self.cancel, log=log):
            log(">>>>>>> Solution is not complete. Failed.")
            return self._outcome(run_index, RunStatus.FAILED, error="Initial attempt did not yield a complete solution.")

        log(">>>>>>> Verify the solution.")
        verification = self._verify(solution)
        counters = ConvergenceCounters()
        counters.record(verification.verdict)
        log(f">>>>>>> Initial verification: {'accepted' if verification.verdict else 'rejected'}")

        for iteration in range(config.MAX_ITERATIONS):
            if self.cancel.cancelled:
                return self._outcome(run_index, RunStatus.ABORTED, iterations=iteration, counters=counters)

            self.metrics.iterations_total += 1
            log(
                f"Number of iterations: {iteration}, number of corrects: {counters.successes}, "
                f"number of errors: {counters.failures}"
            )

            if not verification.verdict:
                log(">>>>>>> Verification does not pass, correcting ...")
                solution = correct(
                    self.generator,
                    self.problem,
                    self.other_prompts,
                    solution,
                    verification.bug_report,
                    self.cancel,
                    log=log,
                )
                self.metrics.corrections += 1

                if not is_claimed_complete(self.generator, solution, self.cancel, log=log):
                    log(">>>>>>> Solution is not complete. Failed.")
                    return self._outcome(
                        run_index, RunStatus.FAILED, error="Solution failed completeness check.",
                        iterations=iteration + 1, counters=counters,
                    )

            log(">>>>>>> Verify the solution.")
            verification = self._verify(solution)
            counters.record(verification.verdict)
            if verification.verdict:
                log(">>>>>>> Solution is good, verifying again ...")

            if counters.converged:
                log(">>>>>>> Correct solution found.")
                return self._outcome(
                    run_index, RunStatus.CONVERGED, solution=solution,
                    iterations=iteration + 1, counters=counters,
                )
            if counters.exhausted:
                log(">>>>>>> Failed in finding a correct solution.")
                return self._outcome(
                    run_index, RunStatus.FAILED, error="Exceeded maximum error threshold while iterating.",
                    iterations=iteration + 1, counters=counters,
                )

        log(">>>>>>> Iteration limit reached without a verified solution.")
        return self._outcome(
            run_index, RunStatus.FAILED, error="Exceeded maximum iterations without convergence.",
            iterations=config.MAX_ITERATIONS, counters=counters,
        )

    def _verify(self, solution: str) -> VerificationResult:
        self.metrics.verifications += 1
        return verify(self.generator, self.problem, solution, self.cancel, log=self._log)

    @staticmethod
    def _outcome(
        run_index: int,
        status: RunStatus,
        *,
        solution: Optional[str] = None,
        error: Optional[str] = None,
        iterations: int = 0,
        counters: Optional[ConvergenceCounters] = None,
    ) -> RunOutcome:
        counters = counters or ConvergenceCounters()
        return RunOutcome(
            run_index=run_index,
            status=status,
            solution=solution,
            error=error,
            iterations=iterations,
            successes=counters.successes,
            failures=counters.failures,
        )

    def _log_backend_selection(self) -> None:
        """Record provider/model selection for auditability; resolution errors are not fatal here."""
        environ = getattr(self.generator, "environ", os.environ)
        raw = (environ.get(config.MODEL_OVERRIDE_VAR) or "").strip()
        self._log(f'[ProofHelper] Model env: "{raw or "(unset)"}"')

        resolve = getattr(self.generator, "resolve", None)
        if resolve is None:
            return
        try:
            backend = resolve()
        except ConfigurationError as e:
            self._log(f"[ProofHelper] Backend not resolved: {e}")
            logger.warning("Backend not resolved: %s", e)
            return

        self._log(f"[ProofHelper] {describe_backend(backend)}")
        if isinstance(backend, OpenAIBackend) and backend.shape is WireShape.RESPONSES:
            self._log(f"[ProofHelper] GPT5 reasoning effort: {backend.reasoning_effort}")

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def _build_metadata(self) -> dict:
        return {
            "runs_attempted": self.metrics.runs_attempted,
            "iterations": self.metrics.iterations_total,
            "verifications": self.metrics.verifications,
            "corrections": self.metrics.corrections,
            "runtime_s": round(self.timer.elapsed_s(), 3),
            "token_usage": dict(getattr(self.generator, "usage", {}) or {}),
        }

    def _solved(self, handle: RunHandle, solution: str) -> ProofResult:
        try:
            path = finalize_run(handle, solution)
        except OSError as e:
            logger.error("Could not write %s: %s", handle.solution_path, e)
            self._log(f">>>>>>> Could not write solution: {e}")
            return self._failed(handle, f"Solution found but could not be saved: {e}")

        rel = handle.relative(path)
        logger.info("Solution written to %s", path)
        return ProofResult(
            status=ProofStatus.SOLVED,
            message=f"Proof helper completed successfully. Output saved to {rel}",
            solution=solution,
            artifact_path=rel,
            runs_attempted=self.metrics.runs_attempted,
            metadata=self._build_metadata(),
        )

    def _failed(self, handle: RunHandle, last_error: Optional[str]) -> ProofResult:
        error = last_error or "No correct solution found."
        rel = handle.relative(handle.run_dir)
        logger.info("No solution found: %s", error)
        return ProofResult(
            status=ProofStatus.FAILED,
            message=f"{error} (See {rel} for logs)",
            error=error,
            artifact_path=rel,
            runs_attempted=self.metrics.runs_attempted,
            metadata=self._build_metadata(),
        )

    def _aborted(self, handle: RunHandle) -> ProofResult:
        rel = handle.relative(handle.run_dir)
        logger.info("Proof helper cancelled")
        return ProofResult(
            status=ProofStatus.ABORTED,
            message=f"Proof helper was cancelled. (See {rel} for logs)",
            error="Cancelled",
            artifact_path=rel,
            runs_attempted=self.metrics.runs_attempted,
            metadata=self._build_metadata(),
        )


def run_proof_helper(params: ProofHelperParams, **kwargs) -> ProofResult:
    """Convenience wrapper: build a ProofController and run it."""
    return ProofController(params, **kwargs).run()

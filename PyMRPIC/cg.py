import jax.numpy as jnp
from jax import lax
# import external libraries

def identity(x):
    return x

def dot(A, B):
    """Euclidean inner product of two arrays of the same shape, whatever their rank."""
    return jnp.sum(A * B)

def conjugated_gradients(A, b, x0, reltol=1e-6, abstol=0.0, maxiter=1000, M=identity):
    """
    Preconditioned conjugate gradient solve of A x = b inside a lax.while_loop.

    A must be symmetric positive definite on the space the residual lives in. Iterations stop
    once |r| <= max(reltol * |b|, abstol) or after maxiter steps.

    Args:
        A (callable): Matrix free operator, A(x) returns an array shaped like x.
        b (array-like): Right hand side.
        x0 (array-like): Initial guess.
        reltol (float, optional): Residual tolerance relative to |b|.
        abstol (float, optional): Absolute residual tolerance.
        maxiter (int, optional): Iteration cap.
        M (callable, optional): Preconditioner applied to the residual.

    Returns:
        tuple: (x, converged, iterations, residual_norm)
    """
    target = jnp.maximum(reltol * jnp.sqrt(dot(b, b)), abstol)

    r = b - A(x0)
    z = M(r)
    initial_value = x0, r, z, dot(r, z), 0
    # search direction starts along the preconditioned residual

    def body_func(value):
        x, r, p, rz, i = value
        Ap = A(p)
        step = rz / dot(p, Ap)
        x = x + step * p
        r = r - step * Ap
        z = M(r)
        rz_new = dot(r, z)
        p = z + (rz_new / rz) * p
        return x, r, p, rz_new, i + 1

    def cond_fun(value):
        _, r, _, _, i = value
        return (jnp.sqrt(dot(r, r)) > target) & (i < maxiter)

    x, r, _, _, iterations = lax.while_loop(cond_fun, body_func, initial_value)

    residual_norm = jnp.sqrt(dot(r, r))
    return x, residual_norm <= target, iterations, residual_norm

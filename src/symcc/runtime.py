# Generic sources of the auxiliary routines.
#
# Each text is valid C++ on its own; the auxiliary engine rewrites it into C
# for a concrete list of types. Directives understood by the rewriter:
#   // SYMBOL "name"         casadi_name gets a per-instantiation suffix
#   // C-REPLACE "key" "sub" literal replacement for the lines that follow

COPY_SRC = r"""// SYMBOL "copy"
template<typename T1>
void casadi_copy(const T1* x, int n, T1* y) {
  int i;
  if (y) {
    if (x) {
      for (i=0; i<n; ++i) *y++ = *x++;
    } else {
      for (i=0; i<n; ++i) *y++ = 0.;
    }
  }
}
"""

SWAP_SRC = r"""// SYMBOL "swap"
template<typename T1>
void casadi_swap(int n, T1* x, int inc_x, T1* y, int inc_y) {
  T1 t;
  int i;
  for (i=0; i<n; ++i) {
    t = *x;
    *x = *y;
    *y = t;
    x += inc_x;
    y += inc_y;
  }
}
"""

SCAL_SRC = r"""// SYMBOL "scal"
template<typename T1>
void casadi_scal(int n, T1 alpha, T1* x) {
  int i;
  if (!x) return;
  for (i=0; i<n; ++i) *x++ *= alpha;
}
"""

AXPY_SRC = r"""// SYMBOL "axpy"
template<typename T1>
void casadi_axpy(int n, T1 alpha, const T1* x, T1* y) {
  int i;
  if (!x || !y) return;
  for (i=0; i<n; ++i) *y++ += alpha * *x++;
}
"""

DOT_SRC = r"""// SYMBOL "dot"
template<typename T1>
T1 casadi_dot(int n, const T1* x, const T1* y) {
  int i;
  T1 r = 0;
  for (i=0; i<n; ++i) r += *x++ * *y++;
  return r;
}
"""

BILIN_SRC = r"""// SYMBOL "bilin"
// x'*A*y with A sparse
template<typename T1>
T1 casadi_bilin(const T1* A, const int* sp_A, const T1* x, const T1* y) {
  int ncol_A, cc, el;
  const int *colind_A, *row_A;
  T1 ret;
  ncol_A = sp_A[1];
  colind_A = sp_A+2; row_A = sp_A + 2 + ncol_A+1;
  ret = 0;
  for (cc=0; cc<ncol_A; ++cc) {
    for (el=colind_A[cc]; el<colind_A[cc+1]; ++el) {
      ret += x[row_A[el]] * A[el] * y[cc];
    }
  }
  return ret;
}
"""

RANK1_SRC = r"""// SYMBOL "rank1"
// A += alpha*x*y', restricted to the sparsity of A
template<typename T1>
void casadi_rank1(T1* A, const int* sp_A, T1 alpha, const T1* x, const T1* y) {
  int ncol_A, cc, el;
  const int *colind_A, *row_A;
  ncol_A = sp_A[1];
  colind_A = sp_A+2; row_A = sp_A + ncol_A + 3;
  for (cc=0; cc<ncol_A; ++cc) {
    for (el=colind_A[cc]; el<colind_A[cc+1]; ++el) {
      A[el] += alpha*x[row_A[el]]*y[cc];
    }
  }
}
"""

IAMAX_SRC = r"""// SYMBOL "iamax"
// C-REPLACE "std::fabs" "fabs"
template<typename T1>
int casadi_iamax(int n, const T1* x, int inc_x) {
  T1 t;
  T1 largest_value = -1.0;
  int largest_index = -1;
  int i;
  for (i=0; i<n; ++i) {
    t = std::fabs(*x);
    x += inc_x;
    if (t>largest_value) {
      largest_value = t;
      largest_index = i;
    }
  }
  return largest_index;
}
"""

FILL_SRC = r"""// SYMBOL "fill"
template<typename T1>
void casadi_fill(T1* x, int n, T1 alpha) {
  int i;
  if (x) {
    for (i=0; i<n; ++i) *x++ = alpha;
  }
}
"""

NORM_1_SRC = r"""// SYMBOL "norm_1"
// C-REPLACE "std::fabs" "fabs"
template<typename T1>
T1 casadi_norm_1(int n, const T1* x) {
  int i;
  T1 ret = 0;
  if (x) {
    for (i=0; i<n; ++i) ret += std::fabs(*x++);
  }
  return ret;
}
"""

NORM_2_SRC = r"""// SYMBOL "norm_2"
// C-REPLACE "std::sqrt" "sqrt"
template<typename T1>
T1 casadi_norm_2(int n, const T1* x) {
  return std::sqrt(casadi_dot(n, x, x));
}
"""

NORM_INF_SRC = r"""// SYMBOL "norm_inf"
// C-REPLACE "std::fmax" "fmax"
// C-REPLACE "std::fabs" "fabs"
template<typename T1>
T1 casadi_norm_inf(int n, const T1* x) {
  int i;
  T1 ret = 0;
  for (i=0; i<n; ++i) ret = std::fmax(ret, std::fabs(*x++));
  return ret;
}
"""

MV_SRC = r"""// SYMBOL "mv"
// z += x*y (or x'*y when tr), x sparse
template<typename T1>
void casadi_mv(const T1* x, const int* sp_x, const T1* y, T1* z, int tr) {
  int ncol_x, i, el;
  const int *colind_x, *row_x;
  if (!x || !y || !z) return;
  ncol_x = sp_x[1];
  colind_x = sp_x+2; row_x = sp_x + 2 + ncol_x+1;
  if (tr) {
    for (i=0; i<ncol_x; ++i) {
      for (el=colind_x[i]; el<colind_x[i+1]; ++el) {
        z[i] += x[el] * y[row_x[el]];
      }
    }
  } else {
    for (i=0; i<ncol_x; ++i) {
      for (el=colind_x[i]; el<colind_x[i+1]; ++el) {
        z[row_x[el]] += x[el] * y[i];
      }
    }
  }
}
"""

MV_DENSE_SRC = r"""// SYMBOL "mv_dense"
template<typename T1>
void casadi_mv_dense(const T1* x, int nrow_x, int ncol_x, const T1* y, T1* z, int tr) {
  int i, j;
  if (!x || !y || !z) return;
  if (tr) {
    for (i=0; i<ncol_x; ++i) {
      for (j=0; j<nrow_x; ++j) {
        z[i] += *x++ * y[j];
      }
    }
  } else {
    for (i=0; i<ncol_x; ++i) {
      for (j=0; j<nrow_x; ++j) {
        z[j] += *x++ * y[i];
      }
    }
  }
}
"""

MTIMES_SRC = r"""// SYMBOL "mtimes"
// z += x*y (or x'*y when tr), all sparse, w has room for one dense column
template<typename T1>
void casadi_mtimes(const T1* x, const int* sp_x, const T1* y, const int* sp_y,
                   T1* z, const int* sp_z, T1* w, int tr) {
  int ncol_x, ncol_y, ncol_z, cc, kk, kk1, rr;
  const int *colind_x, *row_x, *colind_y, *row_y, *colind_z, *row_z;
  ncol_x = sp_x[1];
  colind_x = sp_x+2; row_x = sp_x + 2 + ncol_x+1;
  ncol_y = sp_y[1];
  colind_y = sp_y+2; row_y = sp_y + 2 + ncol_y+1;
  ncol_z = sp_z[1];
  colind_z = sp_z+2; row_z = sp_z + 2 + ncol_z+1;
  if (tr) {
    for (cc=0; cc<ncol_z; ++cc) {
      for (kk=colind_y[cc]; kk<colind_y[cc+1]; ++kk) {
        w[row_y[kk]] = y[kk];
      }
      for (kk=colind_z[cc]; kk<colind_z[cc+1]; ++kk) {
        rr = row_z[kk];
        for (kk1=colind_x[rr]; kk1<colind_x[rr+1]; ++kk1) {
          z[kk] += x[kk1] * w[row_x[kk1]];
        }
      }
    }
  } else {
    for (cc=0; cc<ncol_y; ++cc) {
      for (kk=colind_z[cc]; kk<colind_z[cc+1]; ++kk) {
        w[row_z[kk]] = z[kk];
      }
      for (kk=colind_y[cc]; kk<colind_y[cc+1]; ++kk) {
        rr = row_y[kk];
        for (kk1=colind_x[rr]; kk1<colind_x[rr+1]; ++kk1) {
          w[row_x[kk1]] += x[kk1]*y[kk];
        }
      }
      for (kk=colind_z[cc]; kk<colind_z[cc+1]; ++kk) {
        z[kk] = w[row_z[kk]];
      }
    }
  }
}
"""

PROJECT_SRC = r"""// SYMBOL "project"
template<typename T1>
void casadi_project(const T1* x, const int* sp_x, T1* y, const int* sp_y, T1* w) {
  int ncol_x, ncol_y, i, el;
  const int *colind_x, *row_x, *colind_y, *row_y;
  ncol_x = sp_x[1];
  colind_x = sp_x+2; row_x = sp_x + ncol_x + 3;
  ncol_y = sp_y[1];
  colind_y = sp_y+2; row_y = sp_y + ncol_y + 3;
  for (i=0; i<ncol_x; ++i) {
    for (el=colind_y[i]; el<colind_y[i+1]; ++el) w[row_y[el]] = 0;
    for (el=colind_x[i]; el<colind_x[i+1]; ++el) w[row_x[el]] = x[el];
    for (el=colind_y[i]; el<colind_y[i+1]; ++el) y[el] = w[row_y[el]];
  }
}
"""

DENSIFY_SRC = r"""// SYMBOL "densify"
// C-REPLACE "casadi_fill<T2>" "casadi_fill"
template<typename T1, typename T2>
void casadi_densify(const T1* x, const int* sp_x, T2* y, int tr) {
  int nrow_x, ncol_x, i, el;
  const int *colind_x, *row_x;
  if (!y) return;
  nrow_x = sp_x[0]; ncol_x = sp_x[1];
  colind_x = sp_x+2; row_x = sp_x+ncol_x+3;
  casadi_fill<T2>(y, nrow_x*ncol_x, 0);
  if (!x) return;
  if (tr) {
    for (i=0; i<ncol_x; ++i) {
      for (el=colind_x[i]; el<colind_x[i+1]; ++el) {
        y[i + row_x[el]*ncol_x] = CASADI_CAST(T2, *x++);
      }
    }
  } else {
    for (i=0; i<ncol_x; ++i) {
      for (el=colind_x[i]; el<colind_x[i+1]; ++el) {
        y[row_x[el] + i*nrow_x] = CASADI_CAST(T2, *x++);
      }
    }
  }
}
"""

TRANS_SRC = r"""// SYMBOL "trans"
template<typename T1>
void casadi_trans(const T1* x, const int* sp_x, T1* y, const int* sp_y, int* tmp) {
  int ncol_x, nnz_x, ncol_y, k;
  const int *row_x, *colind_y;
  ncol_x = sp_x[1];
  nnz_x = sp_x[2 + ncol_x];
  row_x = sp_x + 2 + ncol_x+1;
  ncol_y = sp_y[1];
  colind_y = sp_y+2;
  for (k=0; k<ncol_y; ++k) tmp[k] = colind_y[k];
  for (k=0; k<nnz_x; ++k) {
    y[tmp[row_x[k]]++] = x[k];
  }
}
"""

FLIP_SRC = r"""// SYMBOL "flip"
inline
int casadi_flip(int* corner, int ndim) {
  int i;
  for (i=0; i<ndim; ++i) {
    if (corner[i]) {
      corner[i]=0;
    } else {
      corner[i]=1;
      return 1;
    }
  }
  return 0;
}
"""

LOW_SRC = r"""// SYMBOL "low"
// Index of the grid interval holding x, clamped to [0, ng-2]
template<typename T1>
int casadi_low(T1 x, const T1* grid, int ng, int lookup_mode) {
  int i, ret;
  T1 g0, dg;
  if (lookup_mode) {
    g0 = grid[0];
    dg = grid[ng-1]-g0;
    ret = CASADI_CAST(int, (x-g0)*(ng-1)/dg);
    if (ret<0) ret=0;
    if (ret>ng-2) ret=ng-2;
    return ret;
  } else {
    for (i=0; i<ng-2; ++i) {
      if (x < grid[i+1]) break;
    }
    return i;
  }
}
"""

INTERPN_WEIGHTS_SRC = r"""// SYMBOL "interpn_weights"
template<typename T1>
void casadi_interpn_weights(int ndim, const T1* grid, const int* offset, const T1* x,
                            T1* alpha, int* index, const int* lookup_mode) {
  int i, ng, j;
  T1 xi;
  const T1* g;
  for (i=0; i<ndim; ++i) {
    xi = x ? x[i] : 0;
    g = grid + offset[i];
    ng = offset[i+1]-offset[i];
    j = index[i] = casadi_low(xi, g, ng, lookup_mode[i]);
    alpha[i] = (xi-g[j])/(g[j+1]-g[j]);
  }
}
"""

INTERPN_INTERPOLATE_SRC = r"""// SYMBOL "interpn_interpolate"
template<typename T1>
T1 casadi_interpn_interpolate(int ndim, const int* offset, const T1* values,
                              const T1* alpha, const int* index, const int* corner, T1* coeff) {
  T1 c;
  int ld, i;
  c = 1;
  ld = 1;
  for (i=0; i<ndim; ++i) {
    if (coeff) *coeff++ = c;
    if (corner[i]) {
      c *= alpha[i];
    } else {
      c *= 1-alpha[i];
    }
    values += (index[i]+corner[i])*ld;
    ld *= offset[i+1]-offset[i];
  }
  if (coeff) {
    return *values;
  } else {
    return c * *values;
  }
}
"""

INTERPN_SRC = r"""// SYMBOL "interpn"
// C-REPLACE "casadi_fill<int>" "casadi_fill_int"
template<typename T1>
T1 casadi_interpn(int ndim, const T1* grid, const int* offset, const T1* values,
                  const T1* x, const int* lookup_mode, int* iw, T1* w) {
  T1* alpha;
  int *index, *corner;
  T1 ret;
  alpha = w; w += ndim;
  index = iw; iw += ndim;
  corner = iw; iw += ndim;
  casadi_interpn_weights(ndim, grid, offset, x, alpha, index, lookup_mode);
  casadi_fill<int>(corner, ndim, 0);
  ret = 0;
  do {
    ret += casadi_interpn_interpolate(ndim, offset, values, alpha, index, corner, 0);
  } while (casadi_flip(corner, ndim));
  return ret;
}
"""

INTERPN_GRAD_SRC = r"""// SYMBOL "interpn_grad"
// C-REPLACE "casadi_fill<int>" "casadi_fill_int"
template<typename T1>
void casadi_interpn_grad(T1* grad, int ndim, const T1* grid, const int* offset,
                         const T1* values, const T1* x, const int* lookup_mode, int* iw, T1* w) {
  T1 *alpha, *coeff, v;
  const T1* g;
  int *index, *corner, i, j;
  alpha = w; w += ndim;
  coeff = w; w += ndim;
  index = iw; iw += ndim;
  corner = iw; iw += ndim;
  casadi_interpn_weights(ndim, grid, offset, x, alpha, index, lookup_mode);
  casadi_fill<int>(corner, ndim, 0);
  casadi_fill(grad, ndim, 0.);
  do {
    v = casadi_interpn_interpolate(ndim, offset, values, alpha, index, corner, coeff);
    for (i=ndim-1; i>=0; --i) {
      if (corner[i]) {
        grad[i] += v*coeff[i];
        v *= alpha[i];
      } else {
        grad[i] -= v*coeff[i];
        v *= 1-alpha[i];
      }
    }
  } while (casadi_flip(corner, ndim));
  for (i=0; i<ndim; ++i) {
    g = grid + offset[i];
    j = index[i];
    grad[i] /= g[j+1]-g[j];
  }
}
"""

DE_BOOR_SRC = r"""// SYMBOL "de_boor"
template<typename T1>
void casadi_de_boor(T1 x, const T1* knots, int n_knots, int degree, T1* boor) {
  int d, i;
  T1 b, bottom;
  for (d=1; d<degree+1; ++d) {
    for (i=0; i<n_knots-d-1; ++i) {
      b = 0;
      bottom = knots[i + d] - knots[i];
      if (bottom) b = (x - knots[i]) * boor[i] / bottom;
      bottom = knots[i + d + 1] - knots[i + 1];
      if (bottom) b += (knots[i + d + 1] - x) * boor[i + 1] / bottom;
      boor[i] = b;
    }
  }
}
"""

ND_BOOR_EVAL_SRC = r"""// SYMBOL "nd_boor_eval"
// C-REPLACE "casadi_fill<int>" "casadi_fill_int"
template<typename T1>
void casadi_nd_boor_eval(T1* ret, int n_dims, const T1* knots, const int* offset,
                         const int* degree, const int* strides, const T1* c, int m,
                         const T1* x, const int* lookup_mode, int* iw, T1* w) {
  int *boor_offset, *starts, *index, *coeff_offset;
  T1 *cumprod, *all_boor, *boor;
  const T1* knots_i;
  int i, k, n_iter, pivot, n_knots, n_b, L, start;
  boor_offset = iw; iw += n_dims+1;
  starts = iw; iw += n_dims;
  index = iw; iw += n_dims;
  coeff_offset = iw;
  cumprod = w; w += n_dims+1;
  all_boor = w;
  boor_offset[0] = 0;
  cumprod[n_dims] = 1;
  coeff_offset[n_dims] = 0;
  n_iter = 1;
  for (k=0; k<n_dims; ++k) {
    boor = all_boor+boor_offset[k];
    knots_i = knots + offset[k];
    n_knots = offset[k+1]-offset[k];
    n_b = n_knots-degree[k]-1;
    L = casadi_low(x[k], knots_i+degree[k], n_knots-2*degree[k], lookup_mode[k]);
    start = L;
    if (start>n_b-degree[k]-1) start = n_b-degree[k]-1;
    starts[k] = start;
    casadi_fill(boor, 2*degree[k]+1, 0.0);
    if (x[k]>=knots_i[0] && x[k]<=knots_i[n_knots-1]) {
      if (x[k]==knots_i[1]) {
        casadi_fill(boor, degree[k]+1, 1.0);
      } else if (x[k]==knots_i[n_knots-1]) {
        boor[degree[k]] = 1;
      } else if (knots_i[L+degree[k]]==x[k]) {
        boor[degree[k]-1] = 1;
      } else {
        boor[degree[k]] = 1;
      }
    }
    casadi_de_boor(x[k], knots_i+start, 2*degree[k]+2, degree[k], boor);
    boor_offset[k+1] = boor_offset[k] + degree[k]+1;
    n_iter *= degree[k]+1;
  }
  casadi_fill<int>(index, n_dims, 0);
  casadi_fill(ret, m, 0.0);
  for (pivot=n_dims-1; pivot>=0; --pivot) {
    cumprod[pivot] = all_boor[boor_offset[pivot]]*cumprod[pivot+1];
    coeff_offset[pivot] = starts[pivot]*strides[pivot]+coeff_offset[pivot+1];
  }
  for (k=0; k<n_iter; ++k) {
    for (i=0; i<m; ++i) ret[i] += c[coeff_offset[0]*m+i]*cumprod[0];
    index[0]++;
    pivot = 0;
    while (index[pivot]==degree[pivot]+1) {
      index[pivot] = 0;
      if (pivot==n_dims-1) break;
      index[++pivot]++;
    }
    for (; pivot>=0; --pivot) {
      cumprod[pivot] = all_boor[boor_offset[pivot]+index[pivot]]*cumprod[pivot+1];
      coeff_offset[pivot] = (starts[pivot]+index[pivot])*strides[pivot]+coeff_offset[pivot+1];
    }
  }
}
"""

FINITE_DIFF_SRC = r"""// SYMBOL "finite_diff"
// scheme: 0 forward, 1 backward, otherwise central
template<typename T1>
void casadi_finite_diff(const T1* yf, const T1* yc, const T1* yb, T1* J, T1 h,
                        int n_y, int scheme) {
  int i;
  for (i=0; i<n_y; ++i) {
    if (scheme==0) {
      J[i] = (yf[i]-yc[i])/h;
    } else if (scheme==1) {
      J[i] = (yc[i]-yb[i])/h;
    } else {
      J[i] = (yf[i]-yb[i])/(2*h);
    }
  }
}
"""

TO_MEX_SRC = r"""// SYMBOL "to_mex"
template<typename T1>
mxArray* casadi_to_mex(const int* sp, const T1* x) {
  int nrow, ncol, c, k, nnz;
  const int *colind, *row;
  mxArray *p;
  double* d;
  nrow = *sp++; ncol = *sp++;
  colind = sp; row = sp+ncol+1;
  nnz = colind[ncol];
  p = mxCreateSparse(nrow, ncol, nnz, mxREAL);
  for (c=0; c<=ncol; ++c) mxGetJc(p)[c] = colind[c];
  for (k=0; k<nnz; ++k) mxGetIr(p)[k] = row[k];
  if (x) {
    d = (double*)mxGetData(p);
    for (k=0; k<nnz; ++k) d[k] = to_double(x[k]);
  }
  return p;
}
"""

FROM_MEX_SRC = r"""// SYMBOL "from_mex"
template<typename T1>
T1* casadi_from_mex(const mxArray* p, T1* y, const int* sp, T1* w) {
  int nrow, ncol, is_sparse, c, k, p_nrow, p_ncol, tr;
  const int *colind, *row;
  mwIndex *Jc, *Ir;
  const double* p_data;
  T1 v;
  if (!mxIsDouble(p) || mxGetNumberOfDimensions(p)!=2)
    mexErrMsgIdAndTxt("Casadi:RuntimeError", "\"from_mex\" failed: Not a two-dimensional matrix of double precision.");
  nrow = *sp++; ncol = *sp++;
  colind = sp; row = sp+ncol+1;
  p_nrow = mxGetM(p);
  p_ncol = mxGetN(p);
  is_sparse = mxIsSparse(p);
  Jc = 0;
  Ir = 0;
  if (is_sparse) {
    Jc = mxGetJc(p);
    Ir = mxGetIr(p);
  }
  p_data = (const double*)mxGetData(p);
  if (p_nrow==1 && p_ncol==1) {
    v = is_sparse && Jc[1]==0 ? 0 : *p_data;
    casadi_fill(y, colind[ncol], v);
  } else {
    tr = 0;
    if (nrow!=p_nrow || ncol!=p_ncol) {
      tr = nrow==p_ncol && ncol==p_nrow && (nrow==1 || ncol==1);
      if (!tr) mexErrMsgIdAndTxt("Casadi:RuntimeError", "\"from_mex\" failed: Dimension mismatch.");
    }
    if (is_sparse) {
      for (c=0; c<ncol; ++c) {
        for (k=colind[c]; k<colind[c+1]; ++k) w[row[k]+c*nrow]=0;
      }
      for (c=0; c<p_ncol; ++c) {
        for (k=Jc[c]; k<Jc[c+1]; ++k) {
          if (tr) {
            w[c+Ir[k]*p_ncol] = p_data[k];
          } else {
            w[Ir[k]+c*p_nrow] = p_data[k];
          }
        }
      }
      for (c=0; c<ncol; ++c) {
        for (k=colind[c]; k<colind[c+1]; ++k) y[k] = w[row[k]+c*nrow];
      }
    } else {
      for (c=0; c<ncol; ++c) {
        for (k=colind[c]; k<colind[c+1]; ++k) {
          y[k] = p_data[row[k]+c*nrow];
        }
      }
    }
  }
  return y;
}
"""

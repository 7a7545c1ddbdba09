from html import escape

HTML = """<!doctype html><meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>__TITLE__</title>
<style>
body{font-family:-apple-system,"Segoe UI",Roboto,sans-serif;margin:0;padding:48px 16px;background:#18181b;color:#fff}
.wrap{max-width:768px;margin:0 auto}
h1{text-align:center;font-size:1.8rem;margin:0 0 24px}
.group{background:#27272a;border-radius:6px;padding:16px;margin-bottom:24px;box-shadow:0 2px 6px rgba(0,0,0,.4)}
.group h2{font-size:1.25rem;margin:0 0 4px}
.group h3{font-size:.85rem;color:#9ca3af;font-weight:normal;margin:0 0 8px}
a.site{display:flex;align-items:center;justify-content:space-between;gap:8px;text-decoration:none;border-radius:6px;margin-bottom:8px;flex-wrap:wrap}
a.site:hover{background:#3f3f46}
a.primary{background:#27272a;padding:16px;box-shadow:0 1px 4px rgba(0,0,0,.4)}
a.primary .name{font-size:1.1rem;font-weight:600;color:#fff}
.mirrors{display:flex;flex-wrap:wrap;gap:8px;margin-top:8px}
.mirrors a.site{flex-grow:1;background:#3f3f46;padding:12px}
.mirrors .name{font-size:.85rem;color:#6b7280;font-style:italic}
.chip{display:inline-flex;padding:2px 8px;border-radius:999px;font-size:12px;font-weight:700;margin-left:auto}
.Pending{background:#fef08a;color:#854d0e}.Moved{background:#fed7aa;color:#9a3412}
.Online{background:#bbf7d0;color:#166534}.Offline{background:#fecaca;color:#991b1b}
.err{width:100%;color:#ef4444;font-size:.85rem}
.meta{color:#9ca3af;font-size:12px;text-align:center}
</style>
<div class="wrap">
<h1>__TITLE__</h1>
<div id="groups">Loading...</div>
<div id="ts" class="meta"></div>
</div>
<script>
function esc(s){return String(s??'').replace(/[&<>"']/g,c=>({'&':'&amp;','<':'&lt;','>':'&gt;','"':'&quot;',"'":'&#39;'}[c]));}
function site(x, cls){
  return `<a class="site ${cls}" href="${esc(x.url)}" target="_blank" rel="noopener noreferrer">
    <span class="name">${esc(x.name)} &#8599;</span>
    <span class="chip ${esc(x.status)}">${esc(x.text)}</span>
    ${x.error ? `<span class="err">Error: ${esc(x.error)}</span>` : ''}
  </a>`;
}
async function run(){
  try{
    const r = await fetch('/api/status', {cache:'no-store'});
    const data = await r.json();
    document.getElementById('groups').innerHTML = data.groups.map(g => `
      <div class="group">
        <h2>${esc(g.title)}</h2>
        ${g.subtitle ? `<h3>${esc(g.subtitle)}</h3>` : ''}
        ${site(g.primary, 'primary')}
        ${g.mirrors.length ? `<div class="mirrors">${g.mirrors.map(m => site(m, 'mirror')).join('')}</div>` : ''}
      </div>`).join('');
    document.getElementById('ts').textContent = 'Last update: ' + new Date().toLocaleString();
  }catch(e){
    document.getElementById('ts').textContent = 'Status unavailable: ' + e;
  }
}
run(); setInterval(run, __REFRESH_MS__);
</script>
"""


def render_page(title: str, refresh_s: float) -> str:
    return (HTML.replace("__TITLE__", escape(title))
                .replace("__REFRESH_MS__", str(int(refresh_s * 1000))))
